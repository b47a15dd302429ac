"""StepChain Built-in Steps"""

from stepchain.steps.http import HttpStep

__all__ = ["HttpStep"]
