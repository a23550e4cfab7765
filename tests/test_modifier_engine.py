"""Tests for modifier condition evaluation"""
import random
import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.services.modifier.modifier_engine import (
    AgeRangeCondition,
    CustomerContext,
    CustomerTagCondition,
    FirstVisitCondition,
    ManualCondition,
    ModifierEngine,
    age_on,
    parse_condition,
)

TODAY = date(2024, 11, 25)
SERVICE_ID = uuid.uuid4()


def _modifier(condition_type, condition_value=None, auto_apply=True, is_active=True, name="mod"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        service_id=SERVICE_ID,
        name=name,
        condition_type=condition_type,
        condition_value=condition_value,
        duration_modifier=0,
        price_modifier=Decimal("0"),
        auto_apply=auto_apply,
        is_active=is_active,
    )


def _context(**kwargs):
    values = dict(customer_id=uuid.uuid4(), confirmed_bookings=0)
    values.update(kwargs)
    return CustomerContext(**values)


class TestConditions:

    def test_manual_is_never_satisfied(self):
        assert ManualCondition().is_satisfied(_context(), TODAY) is False

    def test_tag_without_value_matches_any_value(self):
        condition = CustomerTagCondition(tag="vip")

        assert condition.is_satisfied(_context(tags=(("vip", "gold"),)), TODAY)
        assert condition.is_satisfied(_context(tags=(("vip", None),)), TODAY)
        assert not condition.is_satisfied(_context(tags=(("student", None),)), TODAY)

    def test_tag_with_value_requires_exact_value(self):
        condition = CustomerTagCondition(tag="vip", value="gold")

        assert condition.is_satisfied(_context(tags=(("vip", "gold"),)), TODAY)
        assert not condition.is_satisfied(_context(tags=(("vip", "silver"),)), TODAY)

    def test_age_range_is_inclusive(self):
        """A customer whose 12th birthday is today matches 0-12"""
        condition = AgeRangeCondition(min_age=0, max_age=12)

        assert condition.is_satisfied(_context(birth_date=date(2012, 11, 25)), TODAY)
        assert not condition.is_satisfied(_context(birth_date=date(2011, 11, 25)), TODAY)

    def test_age_range_without_birth_date(self):
        assert not AgeRangeCondition().is_satisfied(_context(birth_date=None), TODAY)

    def test_age_before_birthday_this_year(self):
        assert age_on(date(2000, 12, 1), TODAY) == 23
        assert age_on(date(2000, 11, 25), TODAY) == 24

    def test_first_visit(self):
        condition = FirstVisitCondition()

        assert condition.is_satisfied(_context(confirmed_bookings=0), TODAY)
        assert not condition.is_satisfied(_context(confirmed_bookings=2), TODAY)

    def test_first_visit_needs_known_customer(self):
        condition = FirstVisitCondition()

        assert not condition.is_satisfied(CustomerContext(confirmed_bookings=0), TODAY)
        assert not condition.is_satisfied(CustomerContext(customer_id=uuid.uuid4()), TODAY)


class TestParseCondition:

    def test_parses_each_kind(self):
        assert isinstance(parse_condition("manual", None), ManualCondition)
        assert parse_condition("customer_tag", {"tag": "vip", "value": "gold"}) == CustomerTagCondition("vip", "gold")
        assert parse_condition("age_range", {"max_age": 12}) == AgeRangeCondition(0, 12)
        assert isinstance(parse_condition("first_visit", {}), FirstVisitCondition)

    def test_age_range_defaults(self):
        assert parse_condition("age_range", {}) == AgeRangeCondition(0, 150)

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValueError):
            parse_condition("lunar_phase", {})

    def test_tag_condition_requires_tag(self):
        with pytest.raises(ValueError):
            parse_condition("customer_tag", {"value": "gold"})


class TestModifierEngine:

    def test_auto_apply_when_condition_holds(self):
        engine = ModifierEngine(today=TODAY)
        kids = _modifier("age_range", {"min_age": 0, "max_age": 12})

        evaluation = engine.evaluate([kids], _context(birth_date=date(2016, 5, 1)))

        assert evaluation.auto_applied == [kids]
        assert evaluation.selectable == []

    def test_unmet_condition_is_selectable(self):
        engine = ModifierEngine(today=TODAY)
        kids = _modifier("age_range", {"min_age": 0, "max_age": 12})

        evaluation = engine.evaluate([kids], _context(birth_date=date(1990, 5, 1)))

        assert evaluation.auto_applied == []
        assert evaluation.selectable == [kids]

    def test_satisfied_but_not_auto_apply_stays_selectable(self):
        engine = ModifierEngine(today=TODAY)
        welcome = _modifier("first_visit", auto_apply=False)

        evaluation = engine.evaluate([welcome], _context())

        assert evaluation.selectable == [welcome]

    def test_manual_modifier_is_selectable_only(self):
        engine = ModifierEngine(today=TODAY)
        extra = _modifier("manual")

        assert engine.evaluate([extra], _context()).selectable == [extra]

    def test_inactive_modifiers_are_ignored(self):
        engine = ModifierEngine(today=TODAY)

        evaluation = engine.evaluate([_modifier("first_visit", is_active=False)], _context())

        assert evaluation.auto_applied == []
        assert evaluation.selectable == []

    def test_missing_context_fails_closed(self):
        engine = ModifierEngine(today=TODAY)
        welcome = _modifier("first_visit")

        assert engine.evaluate([welcome], None).selectable == [welcome]

    def test_malformed_condition_fails_closed(self):
        """Unparseable conditions are treated as not satisfied"""
        engine = ModifierEngine(today=TODAY)
        broken = [
            _modifier("customer_tag", {}),
            _modifier("age_range", {"min_age": "teen"}),
            _modifier("age_range", ["not", "a", "mapping"]),
            _modifier("lunar_phase", {}),
        ]

        evaluation = engine.evaluate(broken, _context(tags=(("vip", None),), birth_date=date(2000, 1, 1)))

        assert evaluation.auto_applied == []
        assert len(evaluation.selectable) == 4

    def test_result_does_not_depend_on_order(self):
        engine = ModifierEngine(today=TODAY)
        context = _context(tags=(("vip", "gold"),), birth_date=date(2015, 1, 1))
        modifiers = [
            _modifier("customer_tag", {"tag": "vip"}),
            _modifier("customer_tag", {"tag": "student"}),
            _modifier("age_range", {"max_age": 12}),
            _modifier("first_visit"),
            _modifier("manual"),
        ]
        expected = {m.id for m in engine.evaluate(modifiers, context).auto_applied}

        shuffled = list(modifiers)
        random.Random(7).shuffle(shuffled)

        assert {m.id for m in engine.evaluate(shuffled, context).auto_applied} == expected
        assert len(expected) == 3
