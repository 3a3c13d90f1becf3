from forage.units.base import RoleType


class Explorer(RoleType):
    type_id = "explorer"
    display_name = "Explorer"
    icon = "X"
    initial_state = "wandering"
    carries_cargo = False

    @classmethod
    def create_fsm(cls):
        from forage.simulation.robot_states import create_explorer_fsm
        return create_explorer_fsm()
