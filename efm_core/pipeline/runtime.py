#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Minimal step sequencer shared by every multi-stage operation.

A pipeline runs its steps in declared order over one context object. Each
step answers CONTINUE, SKIP (stop here, successfully) or abort(error).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

C = TypeVar("C")


class StepOutcome(Enum):
    CONTINUE = "continue"
    SKIP = "skip"
    ABORT = "abort"


@dataclass(frozen=True)
class StepAction:
    outcome: StepOutcome
    error: Optional[Exception] = None

    @classmethod
    def abort(cls, error: Exception) -> "StepAction":
        return cls(StepOutcome.ABORT, error)


CONTINUE = StepAction(StepOutcome.CONTINUE)
SKIP = StepAction(StepOutcome.SKIP)


class PipelineStep(Generic[C]):
    name = "step"

    def should_execute(self, ctx: C) -> bool:
        return True

    async def execute(self, ctx: C) -> StepAction:
        raise NotImplementedError


class Pipeline(Generic[C]):

    def __init__(self, steps: Sequence[PipelineStep[C]]):
        self.steps = list(steps)

    async def execute(self, ctx: C) -> C:
        """Run all steps. Returns the context; raises the error of an aborting step."""
        for step in self.steps:
            if not step.should_execute(ctx):
                logger.debug("Skipping step: %s", step.name)
                continue
            logger.debug("Executing step: %s", step.name)
            action = await step.execute(ctx)
            if action.outcome is StepOutcome.SKIP:
                logger.debug("Step %s ended the pipeline early", step.name)
                return ctx
            if action.outcome is StepOutcome.ABORT:
                logger.error("Step %s aborted: %s", step.name, action.error)
                raise action.error
        return ctx
