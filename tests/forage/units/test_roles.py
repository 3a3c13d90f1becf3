"""Tests for the robot role registry."""

from __future__ import annotations

import pytest

from forage.simulation.state_machine import StateMachine
from forage.units import Explorer, Miner, RoleType, all_types, get_type


pytestmark = pytest.mark.unit


class TestRegistry:
    def test_builtin_roles_registered(self):
        assert get_type("explorer") is Explorer
        assert get_type("miner") is Miner

    def test_unknown_role_is_none(self):
        assert get_type("digger") is None

    def test_all_types_lists_both(self):
        ids = {t.type_id for t in all_types()}
        assert {"explorer", "miner"} <= ids

    def test_icons_are_single_glyphs(self):
        for role in all_types():
            assert len(role.icon) == 1
            assert role.icon not in "#SME."


class TestRoleBehaviour:
    @pytest.mark.parametrize("role", [Explorer, Miner])
    def test_fsm_starts_in_initial_state(self, role):
        fsm = role.create_fsm()
        assert isinstance(fsm, StateMachine)
        assert fsm.current_state == role.initial_state

    def test_only_miners_carry(self):
        assert Miner.carries_cargo
        assert not Explorer.carries_cargo

    def test_base_role_has_no_fsm(self):
        with pytest.raises(NotImplementedError):
            RoleType.create_fsm()

    def test_subclass_registers_itself(self):
        class Scout(RoleType):
            type_id = "scout_for_test"
            display_name = "Scout"
            icon = "C"
            initial_state = "wandering"

        try:
            assert get_type("scout_for_test") is Scout
        finally:
            from forage.units.base import _REGISTRY
            _REGISTRY.pop("scout_for_test", None)
