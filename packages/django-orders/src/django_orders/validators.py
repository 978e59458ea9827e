"""Validator interface run on every order save."""

from typing import TYPE_CHECKING

from .models import OrderAction, OrderKind

if TYPE_CHECKING:
    from .models import Order


class BaseOrderValidator:
    """
    Base class for order validators.

    Validators are registered via the ORDERS_VALIDATORS setting and run
    before anything is written. Any returned message aborts the save.

    Example usage in a vertical package:

        class FormularyValidator(BaseOrderValidator):
            def validate(self, order):
                if order.drug and not order.drug.metadata.get('on_formulary'):
                    return ["Drug is not on the formulary"]
                return []
    """

    def validate(self, order: "Order") -> list[str]:
        """
        Validate an order about to be saved.

        Returns:
            List of violation messages (empty = valid)
        """
        return []


class RequiredFieldsValidator(BaseOrderValidator):
    """Structural checks every order must pass."""

    def validate(self, order):
        violations = []

        if not order.patient_content_type_id or not order.patient_id:
            violations.append("patient is required")
        if order.concept_id is None:
            violations.append("concept is required")
        if order.orderer_id is None:
            violations.append("orderer is required")
        if order.start_date is None:
            violations.append("start_date is required")
        if order.action not in OrderAction.values:
            violations.append(f"action '{order.action}' is not valid")
        if order.kind not in OrderKind.values:
            violations.append(f"kind '{order.kind}' is not valid")

        if (
            order.start_date is not None
            and order.auto_expire_date is not None
            and order.auto_expire_date <= order.start_date
        ):
            violations.append("auto_expire_date must be after start_date")

        if order.action == OrderAction.DISCONTINUE and order.auto_expire_date is not None:
            violations.append("a discontinuation order cannot have an auto_expire_date")

        if order.kind == OrderKind.DRUG:
            if order.drug_id is None:
                violations.append("drug is required for drug orders")
            elif order.concept_id is not None and order.drug.concept_id != order.concept_id:
                violations.append("drug does not belong to the ordered concept")
        elif order.drug_id is not None:
            violations.append("only drug orders may reference a drug")

        return violations
