"""Pipeline runtime."""

from .runtime import CONTINUE, SKIP, Pipeline, PipelineStep, StepAction, StepOutcome

__all__ = ['CONTINUE', 'SKIP', 'Pipeline', 'PipelineStep', 'StepAction', 'StepOutcome']
