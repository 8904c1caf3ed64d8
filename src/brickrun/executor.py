"""Pipeline executor: sequential, validated dispatch of brick invocations."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from brickrun.bricks.base import Brick, BrickKind, BrickOptions
from brickrun.config import RendererTailPolicy, RuntimeConfig
from brickrun.context import ExecutionContext
from brickrun.dom import Element
from brickrun.errors import (
    ConfigurationError,
    InputValidationError,
    PipelineError,
    UnexpectedError,
)
from brickrun.expressions import DeferredPipeline, evaluate_config, is_truthy
from brickrun.pipeline import Invocation, Pipeline
from brickrun.platform import NullPlatform, Platform
from brickrun.registry import BrickRegistry
from brickrun.root_mode import resolve_root
from brickrun.run_logger import RunLogger
from brickrun.schema import pipeline_properties
from brickrun.validation import validate

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunOptions:
    """Services passed by reference to every step of a run."""

    registry: BrickRegistry
    logger: RunLogger = field(default_factory=RunLogger)
    platform: Platform = field(default_factory=NullPlatform)
    config: RuntimeConfig = field(default_factory=RuntimeConfig)


class PipelineExecutor:
    """Run pipelines step by step against immutable contexts."""

    def __init__(self, options: RunOptions) -> None:
        """Store run services.

        Args:
            options: Registry, logger, platform and runtime config.
        """
        self._options = options

    async def run(self, pipeline: Pipeline, context: ExecutionContext) -> object:
        """Run a pipeline and return its output.

        Args:
            pipeline: Ordered invocations.
            context: Initial context; its `input` is the initial current data.
                A context without a document is bound to the platform document.

        Returns:
            Output of the last executed step, the renderer output if a
            renderer ended the branch, or the initial input for an empty
            pipeline.

        Raises:
            PipelineError: Typed by kind; the run halts at the first failure.
        """
        if context.document is None:
            context = context.with_document(self._options.platform.document)
        max_depth = self._options.config.max_depth
        if context.depth > max_depth:
            raise ConfigurationError(
                f"Maximum pipeline nesting depth exceeded ({max_depth})",
                data={"max_depth": max_depth, "depth": context.depth},
            )
        if self._options.config.renderer_tail == RendererTailPolicy.ERROR:
            self._check_renderer_tail(pipeline)

        current = context
        for index, step in enumerate(pipeline):
            if not await self._should_run(step, current):
                self._options.logger.debug(
                    "Skipping step, condition is false", brick_id=step.id, step=index
                )
                continue
            brick = self._options.registry.lookup(step.id)
            output = await self._run_step(brick, step, current, index)
            if brick.kind == BrickKind.RENDERER:
                remaining = len(pipeline) - index - 1
                if remaining:
                    self._options.logger.warning(
                        "Renderer ends the pipeline; skipping remaining steps",
                        brick_id=brick.id,
                        skipped=remaining,
                    )
                return output
            if brick.kind == BrickKind.EFFECT:
                continue
            current = current.with_output(output, output_key=step.output_key)
        return current.input

    async def _run_step(
        self,
        brick: Brick,
        step: Invocation,
        context: ExecutionContext,
        index: int,
    ) -> object:
        """Resolve, validate and dispatch one invocation."""
        logger = self._options.logger.child(
            brick_id=brick.id, label=step.display_name, step=index, depth=context.depth
        )
        try:
            targets = self._resolve_targets(brick, step, context, logger)
            args = await self._resolve_args(brick, step, context)
        except PipelineError:
            raise
        except Exception as exc:
            logger.error("Unexpected error resolving brick config", exc=exc)
            raise UnexpectedError(
                f"Unexpected error resolving config for brick {brick.id!r}: {exc}",
                data={"brick_id": brick.id, "label": step.display_name},
            ) from exc

        result = validate(args, brick.input_schema)
        if not result.valid:
            logger.warning(
                "Invalid brick inputs",
                violations=[v.as_dict() for v in result.violations],
            )
            raise InputValidationError(
                brick.id,
                violations=result.violations,
                input=args,
                schema=brick.input_schema,
            )

        options = BrickOptions(
            context=context,
            targets=targets,
            logger=logger,
            platform=self._options.platform,
            run_pipeline=partial(self._run_deferred, context),
        )
        logger.debug("Running brick")
        try:
            output = await brick.run(args, options)
        except PipelineError:
            raise
        except Exception as exc:
            logger.error("Unexpected error running brick", exc=exc)
            raise UnexpectedError(
                f"Unexpected error in brick {brick.id!r}: {exc}",
                data={"brick_id": brick.id, "label": step.display_name},
            ) from exc
        logger.debug("Brick finished")
        return output

    def _resolve_targets(
        self,
        brick: Brick,
        step: Invocation,
        context: ExecutionContext,
        logger: RunLogger,
    ) -> tuple[Element, ...]:
        """Resolve target elements; only root-aware bricks target elements."""
        if not brick.is_root_aware():
            if step.root is not None or step.is_root_aware:
                logger.warning("Ignoring root targeting for brick without targets")
            return ()
        targets = resolve_root(
            selector=step.root,
            is_root_aware=step.is_root_aware,
            default_root=context.scope,
            document=context.require_document(),
            brick_id=brick.id,
        )
        if not targets:
            logger.debug("Selector matched no elements", selector=step.root)
        return targets

    async def _resolve_args(
        self, brick: Brick, step: Invocation, context: ExecutionContext
    ) -> dict[str, Any]:
        """Evaluate config; run sub-pipelines the brick does not take deferred."""
        environment = context.environment
        deferred = pipeline_properties(brick.input_schema)
        args: dict[str, Any] = {}
        for name, raw in step.config.items():
            value = evaluate_config(raw, environment)
            if name in deferred and isinstance(value, DeferredPipeline):
                args[name] = value
            else:
                args[name] = await self._materialize(value, context)
        return args

    async def _materialize(self, value: object, context: ExecutionContext) -> object:
        """Replace nested deferred pipelines by their outputs."""
        if isinstance(value, DeferredPipeline):
            return await self.run(value.pipeline, context.nested())
        if isinstance(value, dict):
            return {k: await self._materialize(v, context) for k, v in value.items()}
        if isinstance(value, list):
            return [await self._materialize(v, context) for v in value]
        return value

    async def _should_run(self, step: Invocation, context: ExecutionContext) -> bool:
        if step.condition is None:
            return True
        try:
            value = evaluate_config(step.condition, context.environment)
            value = await self._materialize(value, context)
        except PipelineError:
            raise
        except Exception as exc:
            raise UnexpectedError(
                f"Unexpected error evaluating condition for {step.display_name!r}: "
                f"{exc}",
                data={"brick_id": step.id, "label": step.display_name},
            ) from exc
        return is_truthy(value)

    async def _run_deferred(
        self,
        context: ExecutionContext,
        body: DeferredPipeline,
        variables: Mapping[str, object] | None = None,
        *,
        root: Element | None = None,
    ) -> object:
        """Re-enter the executor for a control-flow brick's sub-pipeline."""
        return await self.run(body.pipeline, context.nested(variables, root=root))

    def _check_renderer_tail(self, pipeline: Pipeline) -> None:
        for index, step in enumerate(pipeline[:-1]):
            brick = self._options.registry.lookup(step.id)
            if brick.kind == BrickKind.RENDERER:
                raise ConfigurationError(
                    "Renderer must be the last step of a pipeline",
                    brick_id=brick.id,
                    prop="id",
                    data={"step": index},
                )


async def run_pipeline(
    pipeline: Pipeline, context: ExecutionContext, options: RunOptions
) -> object:
    """Run a pipeline; the runtime's single entry point.

    Args:
        pipeline: Ordered invocations.
        context: Initial execution context.
        options: Registry, logger, platform and config.

    Returns:
        Pipeline output.
    """
    _LOGGER.debug("Starting pipeline run with %d step(s)", len(pipeline))
    return await PipelineExecutor(options).run(pipeline, context)
