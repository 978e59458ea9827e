"""Models for django-orders.

Provides:
- ConceptClass, Concept, Drug: what can be ordered
- OrderType, CareSetting, OrderFrequency: read-only reference data
- Order: a clinical order placed against any patient model via GenericFK
- OrderObservation: results recorded against an order
- OrderNumberSequence: shared counter behind generated order numbers

Orders are append-only. Revisions and discontinuations are new rows linked
through previous_order; write through django_orders.services only.
"""

import uuid

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class TimeStampedModel(models.Model):
    """Abstract base model with created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class RetirableQuerySet(models.QuerySet):
    """QuerySet for reference data that can be retired."""

    def unretired(self):
        return self.filter(retired=False)


class RetirableModel(TimeStampedModel):
    """
    Abstract base for reference data.

    Reference data is never deleted while in use; it is retired instead.
    Retired records stay resolvable by id/uuid so history keeps working.
    """

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    retired = models.BooleanField(default=False)
    retire_reason = models.CharField(max_length=255, blank=True, default="")
    date_retired = models.DateTimeField(null=True, blank=True)

    objects = RetirableQuerySet.as_manager()

    class Meta:
        abstract = True
        ordering = ["name"]

    def __str__(self):
        return self.name


class ConceptClass(RetirableModel):
    """Classification of concepts, e.g. 'Drug', 'Test', 'Procedure'."""

    class Meta(RetirableModel.Meta):
        app_label = "django_orders"
        verbose_name_plural = "concept classes"


class Concept(RetirableModel):
    """A codified clinical idea that can be ordered."""

    code = models.CharField(
        max_length=100,
        unique=True,
        help_text="Stable code of the concept in its source dictionary"
    )
    concept_class = models.ForeignKey(
        ConceptClass,
        on_delete=models.PROTECT,
        related_name="concepts",
    )

    class Meta(RetirableModel.Meta):
        app_label = "django_orders"


class Drug(RetirableModel):
    """A specific formulation of a drug concept."""

    concept = models.ForeignKey(
        Concept,
        on_delete=models.PROTECT,
        related_name="drugs",
    )
    strength = models.CharField(max_length=100, blank=True, default="")

    class Meta(RetirableModel.Meta):
        app_label = "django_orders"


class OrderType(RetirableModel):
    """
    Category of order, e.g. 'Drug Order', 'Test Order'.

    Types form a hierarchy through parent; queries for a type include its
    subtypes transitively. concept_classes maps concepts to a default type.
    """

    name = models.CharField(max_length=255, unique=True)
    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="children",
    )
    concept_classes = models.ManyToManyField(
        ConceptClass,
        blank=True,
        related_name="order_types",
        help_text="Orders for concepts of these classes default to this type"
    )

    class Meta(RetirableModel.Meta):
        app_label = "django_orders"


class CareSettingType(models.TextChoices):
    OUTPATIENT = "OUTPATIENT", "Outpatient"
    INPATIENT = "INPATIENT", "Inpatient"


class CareSetting(RetirableModel):
    """Where care is delivered, e.g. 'Outpatient', 'Inpatient'."""

    name = models.CharField(max_length=255, unique=True)
    care_setting_type = models.CharField(
        max_length=20,
        choices=CareSettingType.choices,
    )

    class Meta(RetirableModel.Meta):
        app_label = "django_orders"


class OrderFrequency(RetirableModel):
    """How often a drug order is administered, backed by a concept."""

    concept = models.OneToOneField(
        Concept,
        on_delete=models.PROTECT,
        related_name="order_frequency",
    )
    frequency_per_day = models.DecimalField(
        max_digits=8,
        decimal_places=4,
        null=True,
        blank=True,
    )

    class Meta(RetirableModel.Meta):
        app_label = "django_orders"
        verbose_name_plural = "order frequencies"


class OrderAction(models.TextChoices):
    NEW = "NEW", "New"
    REVISE = "REVISE", "Revise"
    DISCONTINUE = "DISCONTINUE", "Discontinue"


class OrderKind(models.TextChoices):
    GENERIC = "GENERIC", "Generic"
    TEST = "TEST", "Test"
    DRUG = "DRUG", "Drug"


# Fields a REVISE or DISCONTINUE order must share with its previous order.
MATCH_FIELDS_BY_KIND = {
    OrderKind.GENERIC: ("concept",),
    OrderKind.TEST: ("concept",),
    OrderKind.DRUG: ("concept", "drug"),
}


class OrderQuerySet(models.QuerySet):
    """Custom queryset for Order model."""

    def for_patient(self, patient):
        """Return orders placed against the given patient instance."""
        return self.filter(
            patient_content_type=ContentType.objects.get_for_model(patient),
            patient_id=str(patient.pk),
        )

    def not_voided(self):
        return self.filter(voided=False)

    def of_types(self, order_types):
        return self.filter(order_type__in=order_types)

    def latest_first(self):
        return self.order_by("-start_date", "-id")

    def active(self, as_of=None):
        """
        Return orders active at as_of (defaults to now).

        Database rendition of django_orders.activity.is_active:
        date_stopped, when set, wins over auto_expire_date.
        """
        as_of = as_of or timezone.now()
        return (
            self.filter(voided=False, start_date__lte=as_of)
            .exclude(action=OrderAction.DISCONTINUE)
            .filter(
                Q(date_stopped__gt=as_of)
                | Q(date_stopped__isnull=True, auto_expire_date__isnull=True)
                | Q(date_stopped__isnull=True, auto_expire_date__gt=as_of)
            )
        )


class Order(TimeStampedModel):
    """
    A clinical order placed against a patient.

    Lineage: action NEW starts a lineage; REVISE and DISCONTINUE orders point
    at the order they supersede through previous_order, and the superseded
    order gets date_stopped set to the new order's start_date.

    Activity is derived, never stored:
        from django_orders.activity import is_active
        is_active(order, as_of=some_date)
        Order.objects.for_patient(patient).active(some_date)
    """

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    order_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Human-facing order number, immutable once assigned"
    )

    # Patient - GenericFK with CharField for UUID support
    patient_content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        related_name="+",
        help_text="Content type of the patient model"
    )
    patient_id = models.CharField(
        max_length=255,
        help_text="ID of the patient (CharField for UUID support)"
    )
    patient = GenericForeignKey("patient_content_type", "patient_id")

    concept = models.ForeignKey(
        Concept,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="What is being ordered"
    )
    kind = models.CharField(
        max_length=20,
        choices=OrderKind.choices,
        default=OrderKind.GENERIC,
        help_text="Order variant; decides which fields revisions must match"
    )
    drug = models.ForeignKey(
        Drug,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
        help_text="Drug formulation, required for drug orders"
    )
    order_type = models.ForeignKey(
        OrderType,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
        help_text="Resolved from the concept class or order context when blank"
    )
    care_setting = models.ForeignKey(
        CareSetting,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
        help_text="Resolved from the order context when blank"
    )

    # Lineage
    action = models.CharField(
        max_length=20,
        choices=OrderAction.choices,
        default=OrderAction.NEW,
    )
    previous_order = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="successors",
        help_text="Order this one revises or discontinues"
    )

    # Temporal
    start_date = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the order takes effect"
    )
    date_stopped = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set when a later order revises or discontinues this one"
    )
    auto_expire_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Planned natural expiry (null = until stopped)"
    )

    # Reason and instructions
    order_reason = models.ForeignKey(
        Concept,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        help_text="Coded reason, e.g. for a discontinuation"
    )
    order_reason_non_coded = models.CharField(max_length=255, blank=True, default="")
    instructions = models.TextField(blank=True, default="")

    # Drug dosing
    dose = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    dose_units = models.CharField(max_length=50, blank=True, default="")
    frequency = models.ForeignKey(
        OrderFrequency,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    quantity = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)

    # Actors
    orderer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders_placed",
        help_text="Provider who placed the order"
    )
    encounter_content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    encounter_id = models.CharField(max_length=255, blank=True, default="")
    encounter = GenericForeignKey("encounter_content_type", "encounter_id")
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    # Voiding
    voided = models.BooleanField(default=False)
    void_reason = models.CharField(max_length=255, blank=True, default="")
    voided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    date_voided = models.DateTimeField(null=True, blank=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        app_label = "django_orders"
        ordering = ["-start_date", "-id"]
        indexes = [
            models.Index(
                fields=["patient_content_type", "patient_id"],
                name="orders_patient_idx",
            ),
            models.Index(
                fields=["concept", "care_setting"],
                name="orders_concept_setting_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["previous_order"],
                condition=Q(voided=False),
                name="orders_one_successor_per_previous",
            ),
            models.CheckConstraint(
                condition=Q(action=OrderAction.NEW) | Q(previous_order__isnull=False),
                name="orders_previous_order_required",
            ),
            models.CheckConstraint(
                condition=Q(auto_expire_date__isnull=True) | Q(auto_expire_date__gt=F("start_date")),
                name="orders_auto_expire_after_start",
            ),
        ]

    def __str__(self):
        return f"{self.order_number} ({self.action})"

    def save(self, *args, **kwargs):
        """Ensure GenericFK IDs are strings."""
        if self.patient_id is not None:
            self.patient_id = str(self.patient_id)
        if self.encounter_id:
            self.encounter_id = str(self.encounter_id)
        super().save(*args, **kwargs)

    @property
    def is_discontinuation(self) -> bool:
        return self.action == OrderAction.DISCONTINUE

    @property
    def is_active(self) -> bool:
        """Whether the order is active right now."""
        from .activity import is_active

        return is_active(self)

    def match_fields(self) -> tuple[str, ...]:
        """Fields a revision or discontinuation of this order must match."""
        return MATCH_FIELDS_BY_KIND[OrderKind(self.kind)]


class OrderObservation(TimeStampedModel):
    """
    A result or finding recorded against an order.

    Orders with observations cannot be purged unless the purge cascades.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="observations",
    )
    concept = models.ForeignKey(
        Concept,
        on_delete=models.PROTECT,
        related_name="+",
    )
    value_text = models.TextField(blank=True, default="")
    value_numeric = models.DecimalField(max_digits=18, decimal_places=6, null=True, blank=True)
    obs_datetime = models.DateTimeField(default=timezone.now)

    class Meta:
        app_label = "django_orders"
        ordering = ["-obs_datetime"]

    def __str__(self):
        return f"{self.concept} for {self.order.order_number}"


class OrderNumberSequence(TimeStampedModel):
    """
    Shared counter behind generated order numbers.

    Incremented under select_for_update by
    django_orders.numbering.next_order_number_seed; never decremented.
    """

    scope = models.CharField(
        max_length=50,
        unique=True,
        help_text="Sequence scope, e.g. 'order_number'"
    )
    current_value = models.PositiveBigIntegerField(
        default=0,
        help_text="Last value handed out"
    )

    class Meta:
        app_label = "django_orders"

    def __str__(self):
        return f"{self.scope}: {self.current_value}"
