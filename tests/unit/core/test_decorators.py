"""Tests for the @event decorator."""

from citysim.core import Event, event
from citysim.core.registry import get_event


# noinspection PyUnresolvedReferences
class TestEventDecorator:
    """Test the @event decorator."""

    def test_decorator_without_parens(self, clean_registry):
        """@event adds the Event base without explicit inheritance."""

        @event
        class RefillWell:
            """Refill the well."""

            def execute(self, sim):
                sim.pool.add_resources({"mana": 1})

        assert issubclass(RefillWell, Event)
        assert hasattr(RefillWell, "__dataclass_fields__")
        assert hasattr(RefillWell, "__slots__")
        assert RefillWell.name == "refill_well"
        assert get_event("refill_well") is RefillWell
        assert RefillWell.__doc__ == "Refill the well."

    def test_decorator_with_custom_name(self, clean_registry):
        @event(name="refill")
        class RefillWellWithName:
            def execute(self, sim):
                pass

        assert RefillWellWithName.name == "refill"
        assert get_event("refill") is RefillWellWithName

    def test_decorator_keeps_explicit_inheritance(self, clean_registry):
        @event
        class AlreadyAnEvent(Event):
            def execute(self, sim):
                pass

        assert AlreadyAnEvent.__mro__[1] is Event
        assert get_event("already_an_event") is AlreadyAnEvent

    def test_decorated_event_keeps_fields(self, clean_registry):
        @event
        class AddOre:
            amount: float = 3.0

            def execute(self, sim):
                sim.pool.add_resources({"magic_ore": self.amount})

        instance = AddOre(amount=5.0)
        assert instance.amount == 5.0
        assert not hasattr(instance, "__dict__")

    def test_decorated_event_executes(self, tiny_city, clean_registry):
        @event
        class AddOreNow:
            def execute(self, sim):
                sim.pool.add_resources({"magic_ore": 7})

        before = tiny_city.pool.value("magic_ore")
        AddOreNow().execute(tiny_city)
        assert tiny_city.pool.value("magic_ore") == before + 7
