# app/services/modifier/modifier_engine.py
"""
Modifier Engine

Evaluates service modifiers against what is known about the customer and
splits them into the ones applied automatically and the ones the customer may
still pick. Conditions are a closed set of kinds, each with its own pure check.
A condition that cannot be evaluated counts as not satisfied.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from app.models.service import ConditionType

logger = logging.getLogger(__name__)

DEFAULT_MIN_AGE = 0
DEFAULT_MAX_AGE = 150


@dataclass(frozen=True)
class CustomerContext:
    """What the engine may know about the customer. Every field is optional."""
    customer_id: Optional[UUID] = None
    tags: Tuple[Tuple[str, Optional[str]], ...] = ()
    birth_date: Optional[date] = None
    confirmed_bookings: Optional[int] = None


def age_on(birth_date: date, today: date) -> int:
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


@dataclass(frozen=True)
class ManualCondition:
    """Only ever applied by explicit selection."""
    kind = ConditionType.MANUAL

    def is_satisfied(self, context: CustomerContext, today: date) -> bool:
        return False


@dataclass(frozen=True)
class CustomerTagCondition:
    tag: str
    value: Optional[str] = None
    kind = ConditionType.CUSTOMER_TAG

    def is_satisfied(self, context: CustomerContext, today: date) -> bool:
        for tag, value in context.tags:
            if tag == self.tag and (not self.value or value == self.value):
                return True
        return False


@dataclass(frozen=True)
class AgeRangeCondition:
    min_age: int = DEFAULT_MIN_AGE
    max_age: int = DEFAULT_MAX_AGE
    kind = ConditionType.AGE_RANGE

    def is_satisfied(self, context: CustomerContext, today: date) -> bool:
        if context.birth_date is None:
            return False
        return self.min_age <= age_on(context.birth_date, today) <= self.max_age


@dataclass(frozen=True)
class FirstVisitCondition:
    """No confirmed booking yet for a known customer."""
    kind = ConditionType.FIRST_VISIT

    def is_satisfied(self, context: CustomerContext, today: date) -> bool:
        if context.customer_id is None or context.confirmed_bookings is None:
            return False
        return context.confirmed_bookings == 0


Condition = Union[ManualCondition, CustomerTagCondition, AgeRangeCondition, FirstVisitCondition]


def parse_condition(condition_type: str, condition_value: Optional[Dict[str, Any]]) -> Condition:
    """
    Build the typed condition of a stored modifier.

    Raises:
        ValueError: unknown condition type or malformed condition value
    """
    kind = ConditionType(condition_type)
    value = condition_value or {}

    if kind is ConditionType.MANUAL:
        return ManualCondition()

    if kind is ConditionType.CUSTOMER_TAG:
        tag = value.get("tag")
        if not tag:
            raise ValueError("customer_tag condition requires a tag")
        return CustomerTagCondition(tag=str(tag), value=value.get("value") or None)

    if kind is ConditionType.AGE_RANGE:
        return AgeRangeCondition(
            min_age=int(value.get("min_age") or DEFAULT_MIN_AGE),
            max_age=int(value.get("max_age") or DEFAULT_MAX_AGE),
        )

    return FirstVisitCondition()


@dataclass
class ModifierEvaluation:
    auto_applied: List[Any] = field(default_factory=list)
    selectable: List[Any] = field(default_factory=list)

    @property
    def auto_applied_ids(self) -> List[UUID]:
        return [m.id for m in self.auto_applied]

    def to_dict(self) -> Dict:
        return {
            "auto_applied": [m.to_dict() for m in self.auto_applied],
            "selectable": [m.to_dict() for m in self.selectable],
        }


class ModifierEngine:
    """Partitions active modifiers into auto-applied and selectable."""

    def __init__(self, today: Optional[date] = None):
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def is_satisfied(self, modifier, context: Optional[CustomerContext]) -> bool:
        if context is None:
            return False
        try:
            condition = parse_condition(modifier.condition_type, modifier.condition_value)
            return condition.is_satisfied(context, self.today)
        except (ValueError, TypeError, AttributeError) as e:
            logger.debug(f"Modifier {modifier.id} condition not evaluated: {e}")
            return False

    def evaluate(
            self,
            modifiers: Iterable,
            context: Optional[CustomerContext] = None
    ) -> ModifierEvaluation:
        """
        Evaluate every active modifier. Order of ``modifiers`` does not change
        which ones are auto-applied.
        """
        evaluation = ModifierEvaluation()
        for modifier in modifiers:
            if not modifier.is_active:
                continue
            if modifier.auto_apply and self.is_satisfied(modifier, context):
                evaluation.auto_applied.append(modifier)
            else:
                evaluation.selectable.append(modifier)
        return evaluation
