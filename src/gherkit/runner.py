"""Sequential example execution and result reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from gherkit.models import Example, Feature, Step
from gherkit.steps import StepMatchError, StepRegistry
from gherkit.tags import TagExpression

logger = logging.getLogger(__name__)


class Outcome(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ExampleResult:
    """Result of running one Example."""

    example: Example
    rule: str | None
    outcome: Outcome
    failed_step: Step | None = None
    message: str = ""


@dataclass
class RunResult:
    """Result of running a Feature."""

    feature: str | None = None
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    examples: list[ExampleResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    def record(self, result: ExampleResult) -> None:
        self.examples.append(result)
        if result.outcome is Outcome.PASSED:
            self.passed += 1
        elif result.outcome is Outcome.FAILED:
            self.failed += 1
        else:
            self.skipped += 1


def run_feature(
    feature: Feature,
    registry: StepRegistry,
    tag_expression: TagExpression | None = None,
    continue_after_failure: bool = False,
) -> RunResult:
    """Run every selected Example of ``feature`` in document order.

    Background steps run before each Example's own steps. An Example whose
    tags the expression rejects is reported as skipped. Unless
    ``continue_after_failure`` is set, the run stops at the first failure and
    the remaining Examples are reported as skipped.
    """
    result = RunResult(feature=feature.name)
    background = feature.background.steps if feature.background else ()
    stopped = False

    for rule in feature.rules:
        for example in rule.examples:
            if stopped:
                result.record(ExampleResult(example, rule.name, Outcome.SKIPPED,
                                            message="Run stopped after an earlier failure"))
                continue
            if tag_expression is not None and not tag_expression.matches(example.tags):
                logger.debug("Skipping '%s': tags %s do not match %s",
                             example.name, list(example.tags), tag_expression)
                result.record(ExampleResult(example, rule.name, Outcome.SKIPPED,
                                            message=f"Excluded by tag expression {tag_expression}"))
                continue

            example_result = _run_example(example, rule.name, background + example.steps, registry)
            result.record(example_result)
            if example_result.outcome is Outcome.FAILED and not continue_after_failure:
                stopped = True

    return result


def _run_example(
    example: Example, rule: str | None, steps: tuple[Step, ...], registry: StepRegistry,
) -> ExampleResult:
    for step in steps:
        try:
            definition, step_input = registry.match(step)
        except StepMatchError as e:
            logger.warning("'%s' failed: %s", example.name, e)
            return ExampleResult(example, rule, Outcome.FAILED, step, str(e))
        try:
            definition.action(step_input)
        except Exception as e:
            # Reported as the example's failure
            logger.warning("'%s' failed at '%s': %s", example.name, step.description, e)
            return ExampleResult(example, rule, Outcome.FAILED, step, f"{type(e).__name__}: {e}")
    return ExampleResult(example, rule, Outcome.PASSED)
