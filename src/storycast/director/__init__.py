from .resolution import ChoiceResolver, OutcomeApplier

__all__ = ["ChoiceResolver", "OutcomeApplier"]
