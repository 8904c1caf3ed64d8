"""Unit tests for the pipeline executor."""

from __future__ import annotations

import asyncio

import pytest

from brickrun.bricks import HtmlOutput
from brickrun.config import RendererTailPolicy, RuntimeConfig
from brickrun.context import ExecutionContext
from brickrun.errors import (
    BrickNotFoundError,
    BusinessError,
    ConfigurationError,
    InputValidationError,
    TemplateRenderError,
    UnexpectedError,
)
from brickrun.executor import PipelineExecutor, RunOptions
from brickrun.pipeline import parse_pipeline
from brickrun.registry import BrickRegistry
from brickrun.schema import NumberSchema, properties_to_schema
from tests.unit.helpers import (
    RecordingEffect,
    build_registry,
    run_definition,
    sub_pipeline,
    template,
    var,
)


class _StrictRecorder(RecordingEffect):
    """Recorder that requires an integer `count`."""

    input_schema = properties_to_schema(
        {"count": NumberSchema(type="integer")}, required=["count"]
    )


@pytest.mark.unit
def test_run_threads_outputs_and_named_variables(registry: BrickRegistry) -> None:
    """Each step sees the previous output as `@input` and earlier named outputs."""
    # Arrange - three steps, the first bound to @first
    definition = [
        {
            "id": "test/add",
            "config": {"value": var("@input"), "amount": 2},
            "outputKey": "first",
        },
        {"id": "test/add", "config": {"value": var("@input"), "amount": 10}},
        {"id": "test/echo", "config": {"message": template("{{ @first }}/{{ @input }}")}},
    ]

    # Act - run
    output = run_definition(definition, 1, registry=registry)

    # Assert - threaded output
    assert output == {"message": "3/13"}


@pytest.mark.unit
def test_run_is_deterministic(registry: BrickRegistry) -> None:
    """Same pipeline, input and bricks give the same output."""
    definition = [
        {"id": "test/echo", "config": {"message": template("{{ @input | upper }}")}}
    ]
    first = run_definition(definition, "abc", registry=registry)
    second = run_definition(definition, "abc", registry=registry)
    assert first == second == {"message": "ABC"}


@pytest.mark.unit
def test_empty_pipeline_returns_input(registry: BrickRegistry) -> None:
    """An empty pipeline's output is its input."""
    assert run_definition([], {"keep": True}, registry=registry) == {"keep": True}


@pytest.mark.unit
def test_validation_runs_before_dispatch() -> None:
    """A brick never observes config that fails its contract."""
    # Arrange - strict recorder fed a string count
    strict = _StrictRecorder()
    registry = build_registry(strict)
    definition = [{"id": "test/record", "config": {"count": "three"}}]

    # Act - run
    with pytest.raises(InputValidationError) as info:
        run_definition(definition, registry=registry)

    # Assert - brick never called; error carries details
    assert strict.calls == []
    assert info.value.brick_id == "test/record"
    assert info.value.input == {"count": "three"}
    assert info.value.schema is _StrictRecorder.input_schema
    assert [v.path for v in info.value.violations] == ["#/count"]


@pytest.mark.unit
def test_effect_passes_current_data_through(
    registry: BrickRegistry, recorder: RecordingEffect
) -> None:
    """Effects run for their side effect and keep the current data."""
    # Arrange - effect between transformers
    definition = [
        {"id": "test/record", "config": {"seen": var("@input")}},
        {"id": "test/add", "config": {"value": var("@input"), "amount": 1}},
    ]

    # Act - run
    output = run_definition(definition, 5, registry=registry)

    # Assert - effect saw 5, add received 5
    assert recorder.calls == [{"seen": 5}]
    assert output == 6


@pytest.mark.unit
def test_condition_skips_step(registry: BrickRegistry) -> None:
    """A falsy `if` skips the step and passes data through."""
    # Arrange - conditional increment
    definition = [
        {
            "id": "test/add",
            "config": {"value": var("@input"), "amount": 1},
            "if": var("@options.enabled"),
        }
    ]

    # Act - run with and without the option
    enabled = run_definition(definition, 1, registry=registry, options={"enabled": True})
    disabled = run_definition(definition, 1, registry=registry, options={})

    # Assert
    assert enabled == 2
    assert disabled == 1


@pytest.mark.unit
def test_renderer_ends_the_branch(
    registry: BrickRegistry, recorder: RecordingEffect
) -> None:
    """Steps after a renderer never run."""
    # Arrange - renderer followed by an effect
    definition = [
        {"id": "@brickrun/html/render", "config": {"html": "<b>done</b>"}},
        {"id": "test/record", "config": {}},
    ]

    # Act - run
    output = run_definition(definition, registry=registry)

    # Assert - renderer output, recorder untouched
    assert output == HtmlOutput(html="<b>done</b>")
    assert recorder.calls == []


@pytest.mark.unit
def test_renderer_tail_error_policy_rejects_before_running(
    registry: BrickRegistry, recorder: RecordingEffect
) -> None:
    """With the error policy, a misplaced renderer fails before any step."""
    # Arrange - strict renderer policy
    config = RuntimeConfig(renderer_tail=RendererTailPolicy.ERROR)
    definition = [
        {"id": "test/record", "config": {}},
        {"id": "@brickrun/html/render", "config": {"html": "x"}},
        {"id": "test/record", "config": {}},
    ]

    # Act / Assert - configuration error, nothing ran
    with pytest.raises(ConfigurationError, match="Renderer must be the last step"):
        run_definition(definition, registry=registry, config=config)
    assert recorder.calls == []


@pytest.mark.unit
def test_unknown_brick_is_configuration_error(registry: BrickRegistry) -> None:
    """Unregistered ids fail with a typed lookup error."""
    with pytest.raises(BrickNotFoundError, match="Brick does not exist"):
        run_definition([{"id": "missing/brick"}], registry=registry)


@pytest.mark.unit
def test_unexpected_exception_is_wrapped(registry: BrickRegistry) -> None:
    """Plain exceptions from brick code become `UnexpectedError`."""
    # Act - run exploding brick
    with pytest.raises(UnexpectedError) as info:
        run_definition([{"id": "test/explode"}], registry=registry)

    # Assert - ValueError kept as cause, brick context attached
    assert isinstance(info.value.__cause__, ValueError)
    assert info.value.data["brick_id"] == "test/explode"


@pytest.mark.unit
def test_template_filter_failure_in_config_is_typed(registry: BrickRegistry) -> None:
    """Filter failures while resolving config surface as typed errors."""
    # Arrange - template whose filter rejects its argument
    definition = [
        {
            "id": "test/record",
            "config": {"value": template("{{ @input.n | round('x') }}")},
        }
    ]

    # Act / Assert
    with pytest.raises(TemplateRenderError, match="'round' failed"):
        run_definition(definition, {"n": 1.5}, registry=registry)


@pytest.mark.unit
def test_unexpected_exception_while_resolving_config_is_wrapped(
    registry: BrickRegistry, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Plain exceptions raised before dispatch become `UnexpectedError`."""
    # Arrange - config evaluation that fails with a plain exception
    def _explode(value: object, variables: object) -> object:
        del value, variables
        raise KeyError("broken lookup")

    monkeypatch.setattr("brickrun.executor.evaluate_config", _explode)

    # Act
    with pytest.raises(UnexpectedError) as info:
        run_definition(
            [{"id": "test/record", "config": {"value": 1}}], registry=registry
        )

    # Assert - cause kept, brick named
    assert isinstance(info.value.__cause__, KeyError)
    assert info.value.data["brick_id"] == "test/record"


@pytest.mark.unit
def test_business_error_propagates_unchanged(registry: BrickRegistry) -> None:
    """Typed errors raised by bricks are not re-wrapped."""
    with pytest.raises(BusinessError, match="Out of stock"):
        run_definition(
            [{"id": "@brickrun/error", "config": {"message": "Out of stock"}}],
            registry=registry,
        )


@pytest.mark.unit
def test_sub_pipeline_in_plain_property_runs_eagerly(registry: BrickRegistry) -> None:
    """Sub-pipelines outside pipeline-typed properties resolve to their output."""
    # Arrange - identity with a nested pipeline value
    definition = [
        {
            "id": "@brickrun/identity",
            "config": {
                "value": sub_pipeline(
                    {"id": "test/add", "config": {"value": var("@input"), "amount": 1}}
                )
            },
        }
    ]

    # Act - run with input 1
    output = run_definition(definition, 1, registry=registry)

    # Assert - nested run saw the outer input
    assert output == {"value": 2}


@pytest.mark.unit
def test_max_depth_is_enforced(registry: BrickRegistry) -> None:
    """Nesting deeper than the configured limit is a configuration error."""
    # Arrange - two levels of nesting with a limit of one
    definition = [
        {
            "id": "@brickrun/identity",
            "config": {
                "x": sub_pipeline(
                    {
                        "id": "@brickrun/identity",
                        "config": {"y": sub_pipeline({"id": "@brickrun/identity"})},
                    }
                )
            },
        }
    ]

    # Act / Assert
    with pytest.raises(ConfigurationError, match="Maximum pipeline nesting depth"):
        run_definition(definition, registry=registry, config=RuntimeConfig(max_depth=1))


@pytest.mark.unit
def test_dom_brick_without_selector_is_configuration_error(
    registry: BrickRegistry,
) -> None:
    """Targeting bricks need a selector unless the invocation is root-aware."""
    with pytest.raises(ConfigurationError, match="Selector is required"):
        run_definition([{"id": "@brickrun/html/disable"}], registry=registry)


@pytest.mark.unit
def test_executor_can_be_used_directly(registry: BrickRegistry) -> None:
    """The executor runs parsed pipelines against an explicit context."""
    # Arrange - executor and context
    executor = PipelineExecutor(RunOptions(registry=registry))
    pipeline = parse_pipeline([{"id": "@brickrun/identity", "config": {"a": 1}}])

    # Act - run
    output = asyncio.run(executor.run(pipeline, ExecutionContext.create()))

    # Assert
    assert output == {"a": 1}
