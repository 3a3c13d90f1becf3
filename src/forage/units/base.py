"""Base class for robot roles.

RoleType -- abstract base every concrete role subclasses.  Subclasses
            register themselves on definition; ``forage.units.get_type``
            looks them up by ``type_id``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from forage.simulation.state_machine import StateMachine

_REGISTRY: dict[str, type[RoleType]] = {}


class RoleType:
    """Abstract base for every robot role definition.

    Subclasses MUST set all ClassVar fields and implement ``create_fsm``.
    """

    # -- identity --
    type_id: ClassVar[str]
    display_name: ClassVar[str]
    icon: ClassVar[str]  # single glyph drawn on the map

    # -- behaviour --
    initial_state: ClassVar[str]
    carries_cargo: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        type_id = getattr(cls, "type_id", None)
        if type_id:
            _REGISTRY[type_id] = cls

    @classmethod
    def create_fsm(cls) -> StateMachine:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<RoleType {self.type_id}>"
