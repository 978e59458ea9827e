"""Order service layer.

All write operations go through these functions.
Direct model manipulation bypasses invariants and is unsupported.

Write path:
- save_order(): Validate, resolve defaults, number and persist an order
- revise_order(): Supersede an order with a modified copy
- discontinue_order(): Stop an order with a DISCONTINUE order
- void_order() / unvoid_order(): Reversibly mark an order as entered in error
- purge_order(): Permanently remove an order

Read path (None / empty list when nothing matches):
- get_order(), get_order_by_uuid(), get_order_by_order_number()
- get_orders(), get_all_orders_by_patient(), get_active_orders()
- get_order_history_by_order_number(), get_order_history_by_concept()
- reference data lookups for care settings, order types and frequencies
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from .activity import effective_stop_date, is_expired, is_stopped
from .conf import get_validators
from .exceptions import (
    ConflictError,
    IllegalTransitionError,
    OrderInUseError,
    OrderValidationError,
)
from .history import (
    assert_acyclic,
    get_order_history_by_concept,
    get_order_history_by_order_number,
    get_successor,
)
from .models import (
    CareSetting,
    Concept,
    Order,
    OrderAction,
    OrderFrequency,
    OrderKind,
    OrderType,
)
from .numbering import allocate_order_number, next_order_number_seed
from .resolvers import (
    get_subtypes,
    order_type_and_subtypes,
    resolve_care_setting,
    resolve_order_type,
)

logger = logging.getLogger(__name__)

__all__ = [
    "save_order",
    "revise_order",
    "discontinue_order",
    "void_order",
    "unvoid_order",
    "purge_order",
    "clone_for_revision",
    "get_order",
    "get_order_by_uuid",
    "get_order_by_order_number",
    "get_orders",
    "get_all_orders_by_patient",
    "get_active_orders",
    "get_order_history_by_order_number",
    "get_order_history_by_concept",
    "get_next_order_number_seed",
    "get_care_setting",
    "get_care_setting_by_uuid",
    "get_care_setting_by_name",
    "get_care_settings",
    "get_order_type",
    "get_order_type_by_uuid",
    "get_order_type_by_name",
    "get_order_types",
    "get_subtypes",
    "get_order_frequency",
    "get_order_frequency_by_uuid",
    "get_order_frequency_by_concept",
    "get_order_frequencies",
]


def _illegal(rule: str, message: str) -> IllegalTransitionError:
    logger.warning(f"Rejected order transition ({rule}): {message}")
    return IllegalTransitionError(rule, message)


def _lineage_queryset(order):
    """Orders sharing order's patient, concept and care setting (and drug, for drug orders)."""
    qs = Order.objects.filter(
        patient_content_type_id=order.patient_content_type_id,
        patient_id=str(order.patient_id),
        concept_id=order.concept_id,
        care_setting_id=order.care_setting_id,
    )
    if order.kind == OrderKind.DRUG:
        qs = qs.filter(drug_id=order.drug_id)
    return qs


# =============================================================================
# SAVE
# =============================================================================


def _reject_edit(order: Order) -> None:
    if order.pk is None:
        return
    stored = Order.objects.filter(pk=order.pk).first()
    if stored is None:
        return
    if stored.voided:
        raise _illegal(
            "order_voided",
            f"Order '{stored.order_number}' is voided; unvoid it or place a new order",
        )
    raise _illegal(
        "order_immutable",
        f"Order '{stored.order_number}' is already saved; revise it instead of editing it",
    )


def _run_validators(order: Order) -> None:
    violations = []
    for validator in get_validators():
        violations.extend(validator.validate(order))
    if violations:
        logger.warning(f"Order failed validation: {'; '.join(violations)}")
        raise OrderValidationError(violations)


def _check_new_order(order: Order) -> None:
    if order.previous_order_id is not None:
        raise _illegal(
            "new_order_has_previous",
            "A NEW order cannot reference a previous order; use REVISE or DISCONTINUE",
        )

    _check_no_overlapping_order(order)


def _check_no_overlapping_order(order: Order, ignore: Order = None) -> None:
    """
    Reject order if another order of its lineage is active at some point while it is.

    That is an order active at order.start_date, or one starting later but
    before order stops. ignore is left out of the comparison.
    """
    lineage = _lineage_queryset(order)
    if order.pk is not None:
        lineage = lineage.exclude(pk=order.pk)
    if ignore is not None:
        lineage = lineage.exclude(pk=ignore.pk)

    duplicate = lineage.active(order.start_date).first()
    if duplicate is None:
        later = (
            lineage.not_voided()
            .exclude(action=OrderAction.DISCONTINUE)
            .filter(start_date__gt=order.start_date)
        )
        stop = effective_stop_date(order)
        if stop is not None:
            later = later.filter(start_date__lt=stop)
        duplicate = later.order_by("start_date", "id").first()

    if duplicate is not None:
        raise _illegal(
            "duplicate_active_order",
            f"Order '{duplicate.order_number}' is already active for this concept "
            f"and care setting; revise or discontinue it instead",
        )


def _lock_previous_order(order: Order) -> Order:
    """
    Lock the previous order row and make sure nobody superseded it meanwhile.

    The caller's copy of previous_order is compared with the locked row: if
    the caller saw it open but it is now stopped or has a successor, another
    writer won the race.

    Raises:
        IllegalTransitionError: If there is no previous order, or the caller
            already knew it was stopped
        ConflictError: If it was superseded after the caller read it
    """
    if order.previous_order_id is None:
        raise _illegal(
            "previous_order_required",
            f"A {order.action} order must reference the order it supersedes",
        )

    snapshot = order.previous_order
    locked = Order.objects.select_for_update().get(pk=order.previous_order_id)
    successor = get_successor(locked)

    if successor is None and locked.date_stopped is None:
        return locked

    if snapshot.date_stopped is None:
        logger.warning(
            f"Conflict: order '{locked.order_number}' was superseded by a concurrent writer"
        )
        raise ConflictError(locked)

    if successor is not None and successor.action == OrderAction.DISCONTINUE:
        raise _illegal(
            "previous_order_discontinued",
            f"Order '{locked.order_number}' has already been discontinued",
        )
    raise _illegal(
        "previous_order_stopped",
        f"Order '{locked.order_number}' has already been stopped",
    )


def _check_supersede(order: Order, previous: Order) -> None:
    """Rules shared by REVISE and DISCONTINUE orders."""
    verb = "revise" if order.action == OrderAction.REVISE else "discontinue"

    if previous.voided:
        raise _illegal(
            "previous_order_voided",
            f"Cannot {verb} voided order '{previous.order_number}'",
        )
    if previous.action == OrderAction.DISCONTINUE:
        raise _illegal(
            "previous_order_is_discontinuation",
            f"Cannot {verb} discontinuation order '{previous.order_number}'",
        )
    if is_expired(previous, order.start_date):
        raise _illegal(
            "previous_order_expired",
            f"Cannot {verb} order '{previous.order_number}': it expired on "
            f"{previous.auto_expire_date.isoformat()}",
        )
    if order.start_date < previous.start_date:
        raise _illegal(
            "starts_before_previous_order",
            f"Cannot {verb} order '{previous.order_number}' before it starts",
        )
    if (
        order.patient_content_type_id != previous.patient_content_type_id
        or str(order.patient_id) != previous.patient_id
    ):
        raise _illegal(
            "patient_mismatch",
            f"Order '{previous.order_number}' belongs to a different patient",
        )
    if order.kind != previous.kind:
        raise _illegal(
            "kind_mismatch",
            f"Cannot {verb} a {previous.kind} order with a {order.kind} order",
        )
    for field in previous.match_fields():
        if getattr(order, f"{field}_id") != getattr(previous, f"{field}_id"):
            raise _illegal(
                f"{field}_mismatch",
                f"The {field} of order '{previous.order_number}' does not match this order",
            )
    # A lineage never moves between care settings or order types.
    for field in ("care_setting", "order_type"):
        if getattr(order, f"{field}_id") != getattr(previous, f"{field}_id"):
            raise _illegal(
                f"{field}_mismatch",
                f"The {field.replace('_', ' ')} of order '{previous.order_number}' "
                f"does not match this order",
            )

    if order.action == OrderAction.DISCONTINUE:
        stale = (
            _lineage_queryset(order)
            .active(order.start_date)
            .exclude(pk=previous.pk)
            .first()
        )
        if stale is not None:
            raise _illegal(
                "not_current_order",
                f"Order '{previous.order_number}' is not the current order; "
                f"'{stale.order_number}' is active for this concept and care setting",
            )


@transaction.atomic
def save_order(order: Order, context=None, created_by=None) -> Order:
    """
    Save a new order.

    Steps:
    1. Reject edits of an already saved order
    2. Run the configured validators
    3. Resolve order type and care setting (order, concept class, context)
    4. Apply action rules (NEW / REVISE / DISCONTINUE)
    5. Allocate the order number
    6. Persist, then stop the previous order at this order's start_date

    All steps run in one transaction; the previous order row is locked
    from the check in step 4 until commit.

    Args:
        order: Unsaved Order instance
        context: Optional OrderContext with defaults and overrides
        created_by: Optional user recorded as creator

    Returns:
        The saved Order

    Raises:
        OrderValidationError: Validators or number allocation failed
        UnresolvedDefaultError: Order type or care setting cannot be resolved
        IllegalTransitionError: The action is not allowed for this order
        ConflictError: The previous order was superseded concurrently
        ChainIntegrityError: The previous-order chain is corrupted
    """
    _reject_edit(order)
    _run_validators(order)

    order.order_type = resolve_order_type(order, context)
    order.care_setting = resolve_care_setting(order, context)

    previous = None
    if order.action == OrderAction.NEW:
        _check_new_order(order)
    else:
        previous = _lock_previous_order(order)
        _check_supersede(order, previous)
        assert_acyclic(order)

    order.order_number = allocate_order_number(order, context)
    if created_by is not None:
        order.creator = created_by

    try:
        with transaction.atomic():
            order.save()
    except IntegrityError as e:
        if previous is not None and get_successor(previous) is not None:
            raise ConflictError(previous) from e
        raise

    if previous is not None:
        snapshot = order.previous_order
        previous.date_stopped = order.start_date
        previous.save(update_fields=["date_stopped", "updated_at"])
        if snapshot is not previous:
            snapshot.date_stopped = previous.date_stopped
        order.previous_order = previous

    logger.info(
        f"Saved order '{order.order_number}' ({order.action})"
        + (f" superseding '{previous.order_number}'" if previous is not None else "")
    )
    return order


# =============================================================================
# REVISE / DISCONTINUE
# =============================================================================


def clone_for_revision(previous_order: Order) -> Order:
    """
    Build an unsaved REVISE order copying previous_order's clinical content.

    start_date is left at its default (now) and auto_expire_date is not copied.
    """
    revision = Order(
        patient_content_type_id=previous_order.patient_content_type_id,
        patient_id=previous_order.patient_id,
        concept_id=previous_order.concept_id,
        kind=previous_order.kind,
        drug_id=previous_order.drug_id,
        order_type_id=previous_order.order_type_id,
        care_setting_id=previous_order.care_setting_id,
        action=OrderAction.REVISE,
        previous_order=previous_order,
        instructions=previous_order.instructions,
        dose=previous_order.dose,
        dose_units=previous_order.dose_units,
        frequency_id=previous_order.frequency_id,
        quantity=previous_order.quantity,
        orderer_id=previous_order.orderer_id,
        encounter_content_type_id=previous_order.encounter_content_type_id,
        encounter_id=previous_order.encounter_id,
    )
    return revision


def revise_order(previous_order: Order, context=None, created_by=None, **changes) -> Order:
    """
    Revise an order: save a modified copy that supersedes it.

    Usage:
        revise_order(order, dose=Decimal("500"), start_date=when, orderer=doctor)

    Returns:
        The saved REVISE order
    """
    revision = clone_for_revision(previous_order)
    for field, value in changes.items():
        setattr(revision, field, value)
    return save_order(revision, context=context, created_by=created_by)


def discontinue_order(
    order_to_discontinue: Order,
    reason=None,
    discontinue_date=None,
    orderer=None,
    encounter=None,
    created_by=None,
) -> Order:
    """
    Discontinue an order by saving a DISCONTINUE order that points at it.

    The new order inherits patient, concept, kind, drug, order type and care
    setting from the target.

    Args:
        order_to_discontinue: The order to stop
        reason: A Concept (coded reason) or a string (free text), optional
        discontinue_date: When the order stops (defaults to now, never future)
        orderer: Provider discontinuing the order
        encounter: Optional encounter the discontinuation belongs to
        created_by: Optional user recorded as creator

    Returns:
        The saved DISCONTINUE order

    Raises:
        OrderValidationError: discontinue_date is in the future
        IllegalTransitionError: Target is a discontinuation, voided, stopped or expired
        ConflictError: Target was superseded concurrently
    """
    now = timezone.now()
    discontinue_date = discontinue_date or now
    target = order_to_discontinue

    if discontinue_date > now:
        raise OrderValidationError("discontinue_date cannot be in the future")
    if target.action == OrderAction.DISCONTINUE:
        raise _illegal(
            "previous_order_is_discontinuation",
            f"Cannot discontinue discontinuation order '{target.order_number}'",
        )
    if target.voided:
        raise _illegal(
            "previous_order_voided",
            f"Cannot discontinue voided order '{target.order_number}'",
        )
    if is_stopped(target):
        raise _illegal(
            "previous_order_stopped",
            f"Order '{target.order_number}' has already been stopped",
        )
    if is_expired(target, discontinue_date):
        raise _illegal(
            "previous_order_expired",
            f"Cannot discontinue order '{target.order_number}': it has already expired",
        )

    discontinuation = Order(
        patient_content_type_id=target.patient_content_type_id,
        patient_id=target.patient_id,
        concept_id=target.concept_id,
        kind=target.kind,
        drug_id=target.drug_id,
        order_type_id=target.order_type_id,
        care_setting_id=target.care_setting_id,
        action=OrderAction.DISCONTINUE,
        previous_order=target,
        start_date=discontinue_date,
        orderer=orderer,
    )
    if isinstance(reason, Concept):
        discontinuation.order_reason = reason
    elif reason:
        discontinuation.order_reason_non_coded = reason
    if encounter is not None:
        discontinuation.encounter = encounter

    return save_order(discontinuation, created_by=created_by)


# =============================================================================
# VOID / UNVOID / PURGE
# =============================================================================


@transaction.atomic
def void_order(order: Order, reason: str, voided_by=None) -> Order:
    """
    Void an order.

    Voiding a REVISE or DISCONTINUE order reopens the order it stopped.
    Voiding an already voided order is a no-op. An order that a later order
    revises or discontinues cannot be voided until that later order is.

    Raises:
        OrderValidationError: If reason is blank
        IllegalTransitionError: If a non-voided order supersedes it (order_superseded)
    """
    if not reason or not reason.strip():
        raise OrderValidationError("void reason is required")

    locked = Order.objects.select_for_update().get(pk=order.pk)
    if locked.voided:
        return locked

    successor = get_successor(locked)
    if successor is not None:
        raise _illegal(
            "order_superseded",
            f"Order '{locked.order_number}' is superseded by '{successor.order_number}'; "
            f"void that order first",
        )

    locked.voided = True
    locked.void_reason = reason
    locked.voided_by = voided_by
    locked.date_voided = timezone.now()
    locked.save(update_fields=["voided", "void_reason", "voided_by", "date_voided", "updated_at"])

    if locked.action != OrderAction.NEW and locked.previous_order_id is not None:
        previous = Order.objects.select_for_update().get(pk=locked.previous_order_id)
        if previous.date_stopped == locked.start_date:
            previous.date_stopped = None
            previous.save(update_fields=["date_stopped", "updated_at"])

    logger.info(f"Voided order '{locked.order_number}': {reason}")
    return locked


@transaction.atomic
def unvoid_order(order: Order) -> Order:
    """
    Unvoid an order, clearing its void metadata.

    An unvoided REVISE or DISCONTINUE order stops its previous order again.
    Changes other orders made in the meantime are left alone.

    Raises:
        ConflictError: If the previous order was superseded while this one was voided
        IllegalTransitionError: If another order of the same lineage would be
            active at the same time (duplicate_active_order)
    """
    locked = Order.objects.select_for_update().get(pk=order.pk)
    if not locked.voided:
        return locked

    previous = None
    if locked.action != OrderAction.NEW and locked.previous_order_id is not None:
        previous = Order.objects.select_for_update().get(pk=locked.previous_order_id)
        if get_successor(previous) is not None or previous.date_stopped is not None:
            raise ConflictError(
                previous,
                f"Order '{previous.order_number}' was superseded while "
                f"'{locked.order_number}' was voided",
            )
    if locked.action != OrderAction.DISCONTINUE:
        _check_no_overlapping_order(locked, ignore=previous)

    locked.voided = False
    locked.void_reason = ""
    locked.voided_by = None
    locked.date_voided = None
    locked.save(update_fields=["voided", "void_reason", "voided_by", "date_voided", "updated_at"])

    if previous is not None:
        previous.date_stopped = locked.start_date
        previous.save(update_fields=["date_stopped", "updated_at"])

    logger.info(f"Unvoided order '{locked.order_number}'")
    return locked


@transaction.atomic
def purge_order(order: Order, cascade: bool = False) -> None:
    """
    Permanently delete an order. Not reversible, independent of voiding.

    Purging a live REVISE or DISCONTINUE order reopens the order it stopped,
    as voiding it would.

    Args:
        order: The order to delete
        cascade: Also delete observations recorded against the order

    Raises:
        OrderInUseError: If later orders reference it, or observations exist
            and cascade is False
    """
    successors = Order.objects.filter(previous_order=order).count()
    if successors:
        raise OrderInUseError(order, [f"{successors} later order(s)"])

    observations = order.observations.all()
    if observations.exists():
        if not cascade:
            raise OrderInUseError(order, [f"{observations.count()} observation(s)"])
        observations.delete()

    stored = Order.objects.select_for_update().get(pk=order.pk)
    if not stored.voided and stored.previous_order_id is not None:
        previous = Order.objects.select_for_update().get(pk=stored.previous_order_id)
        if previous.date_stopped == stored.start_date:
            previous.date_stopped = None
            previous.save(update_fields=["date_stopped", "updated_at"])

    order_number = order.order_number
    order.delete()
    logger.info(f"Purged order '{order_number}' (cascade={cascade})")


# =============================================================================
# ORDER QUERIES
# =============================================================================


def get_order(order_id):
    """Return the order with the given internal id, or None."""
    return Order.objects.filter(pk=order_id).first()


def get_order_by_uuid(uuid):
    return Order.objects.filter(uuid=uuid).first()


def get_order_by_order_number(order_number: str):
    return Order.objects.filter(order_number=order_number).first()


def get_orders(patient, care_setting, order_type=None, include_voided: bool = False) -> list[Order]:
    """
    Return a patient's orders in a care setting, optionally of a type.

    order_type matches its subtypes too.

    Raises:
        OrderValidationError: If patient or care_setting is None
    """
    violations = []
    if patient is None:
        violations.append("patient is required")
    if care_setting is None:
        violations.append("care_setting is required")
    if violations:
        raise OrderValidationError(violations)

    qs = Order.objects.for_patient(patient).filter(care_setting=care_setting)
    if order_type is not None:
        qs = qs.of_types(order_type_and_subtypes(order_type))
    if not include_voided:
        qs = qs.not_voided()
    return list(qs.latest_first())


def get_all_orders_by_patient(patient) -> list[Order]:
    """
    Return every order of patient, voided included.

    Raises:
        OrderValidationError: If patient is None
    """
    if patient is None:
        raise OrderValidationError("patient is required")
    return list(Order.objects.for_patient(patient).latest_first())


def get_active_orders(patient, order_type=None, care_setting=None, as_of=None) -> list[Order]:
    """
    Return the patient's orders active at as_of (defaults to now).

    Args:
        patient: Patient instance (required)
        order_type: Only this type and its subtypes (None = all types)
        care_setting: Only this care setting (None = all settings)
        as_of: Instant to evaluate at

    Returns:
        Active orders, latest start_date first

    Raises:
        OrderValidationError: If patient is None
    """
    if patient is None:
        raise OrderValidationError("patient is required")

    qs = Order.objects.for_patient(patient).active(as_of or timezone.now())
    if order_type is not None:
        qs = qs.of_types(order_type_and_subtypes(order_type))
    if care_setting is not None:
        qs = qs.filter(care_setting=care_setting)
    return list(qs.latest_first())


def get_next_order_number_seed() -> int:
    """Consume and return the next value of the shared order number sequence."""
    return next_order_number_seed()


# =============================================================================
# REFERENCE DATA QUERIES
# =============================================================================


def get_care_setting(care_setting_id):
    return CareSetting.objects.filter(pk=care_setting_id).first()


def get_care_setting_by_uuid(uuid):
    return CareSetting.objects.filter(uuid=uuid).first()


def get_care_setting_by_name(name: str):
    return CareSetting.objects.filter(name=name).first()


def get_care_settings(include_retired: bool = False) -> list[CareSetting]:
    qs = CareSetting.objects.all()
    if not include_retired:
        qs = qs.unretired()
    return list(qs)


def get_order_type(order_type_id):
    return OrderType.objects.filter(pk=order_type_id).first()


def get_order_type_by_uuid(uuid):
    return OrderType.objects.filter(uuid=uuid).first()


def get_order_type_by_name(name: str):
    return OrderType.objects.filter(name=name).first()


def get_order_types(include_retired: bool = False) -> list[OrderType]:
    qs = OrderType.objects.all()
    if not include_retired:
        qs = qs.unretired()
    return list(qs)


def get_order_frequency(order_frequency_id):
    return OrderFrequency.objects.filter(pk=order_frequency_id).first()


def get_order_frequency_by_uuid(uuid):
    return OrderFrequency.objects.filter(uuid=uuid).first()


def get_order_frequency_by_concept(concept):
    return OrderFrequency.objects.filter(concept=concept).first()


def get_order_frequencies(include_retired: bool = False) -> list[OrderFrequency]:
    qs = OrderFrequency.objects.all()
    if not include_retired:
        qs = qs.unretired()
    return list(qs)
