from forage.units.base import RoleType


class Miner(RoleType):
    type_id = "miner"
    display_name = "Miner"
    icon = "R"
    initial_state = "idle"
    carries_cargo = True

    @classmethod
    def create_fsm(cls):
        from forage.simulation.robot_states import create_miner_fsm
        return create_miner_fsm()
