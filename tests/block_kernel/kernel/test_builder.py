from __future__ import annotations

import warnings
from pathlib import Path

import pytest

from block_kernel.application_context.service_registry import Lifetime
from block_kernel.kernel.block import entry_point
from block_kernel.kernel.builder import TestBuilder
from block_kernel.kernel.errors import ConfigurationError, UnresolvedDependencyError
from block_kernel.kernel.executor import BlockState
from block_kernel.observability.adapters.logging import MemoryLogSink
from block_kernel.observability.serialization import SERIALIZATION_FALLBACK

_QUIET = {"logging": {"sink": "memory", "level": "debug"}}


class Trail:
    # Shared record of which blocks ran, in order.
    def __init__(self) -> None:
        self.steps: list[str] = []


class Page:
    pass


class LoginPage(Page):
    pass


class Token:
    def __init__(self, value: str) -> None:
        self.value = value


class Session:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class _Step:
    label = "step"

    def execute(self, trail: Trail) -> None:
        trail.steps.append(self.label)


class _StepA(_Step):
    label = "A"


class _StepB(_Step):
    label = "B"


class _StepC(_Step):
    label = "C"


class _Fails:
    def execute(self, trail: Trail) -> None:
        trail.steps.append("fails")
        raise ValueError("element not found")


class _OpensLoginPage:
    def execute(self) -> LoginPage:
        return LoginPage()


class _OpensLoginPageAsPage:
    @entry_point(provides=Page)
    def execute(self) -> LoginPage:
        return LoginPage()


class _NeedsPage:
    def execute(self, page: Page) -> str:
        return type(page).__name__


class _IssueFirst:
    def execute(self) -> Token:
        return Token("first")


class _IssueSecond:
    def execute(self) -> Token:
        return Token("second")


class _ReadToken:
    def execute(self, token: Token) -> str:
        return token.value


class _Login:
    def execute(self, user: str, password: str) -> Token:
        return Token(f"{user}:{password}")


class _UsesSession:
    def execute(self, session: Session, trail: Trail) -> None:
        trail.steps.append(str(id(session)))


class _Leaky:
    def close(self) -> None:
        raise OSError("driver already quit")


class _UsesLeaky:
    def execute(self, leaky: _Leaky) -> None:
        return None


class Opaque:
    # No __dict__ and no JSON form: always rendered as the fallback text.
    __slots__ = ("handle",)

    def __init__(self) -> None:
        self.handle = 42


class _ProducesOpaque:
    def execute(self) -> Opaque:
        return Opaque()


class _ConsumesOpaque:
    def execute(self, opaque: Opaque) -> str:
        return f"handle {opaque.handle}"


class Driver:
    pass


class _UsesDriver:
    def execute(self, driver: Driver, trail: Trail) -> None:
        trail.steps.append("driver")


class _RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, str]] = []

    def debug(self, run_name: str, block_name: str, message: str) -> None:
        self.events.append(("debug", block_name, message))

    def info(self, run_name: str, block_name: str, message: str) -> None:
        self.events.append(("info", block_name, message))

    def error(self, run_name: str, block_name: str, message: str) -> None:
        self.events.append(("error", block_name, message))

    def test_block_input(self, run_name: str, block_name: str, serialized_args: str) -> None:
        self.events.append(("input", block_name, serialized_args))

    def test_block_output(self, run_name: str, block_name: str, serialized_result: str) -> None:
        self.events.append(("output", block_name, serialized_result))


def _builder(trail: Trail | None = None) -> TestBuilder:
    builder = TestBuilder("case", config=_QUIET)
    if trail is not None:
        builder.add_instance(trail)
    return builder


def test_blocks_run_in_registration_order() -> None:
    trail = Trail()
    report = _builder(trail).add_block(_StepC).add_block(_StepA).add_block(_StepB).run()
    assert trail.steps == ["C", "A", "B"]
    assert report.succeeded
    assert [r.name for r in report.records] == ["_StepC", "_StepA", "_StepB"]


def test_result_type_must_match_exactly() -> None:
    builder = _builder().add_block(_OpensLoginPage).add_block(_NeedsPage)
    with pytest.raises(UnresolvedDependencyError) as excinfo:
        builder.run()
    assert excinfo.value.required is Page
    assert builder.last_report is not None
    assert builder.last_report.record("_OpensLoginPage").state is BlockState.COMPLETED
    assert builder.last_report.record("_NeedsPage").state is BlockState.FAILED


def test_declared_provides_publishes_under_base_type() -> None:
    report = _builder().add_block(_OpensLoginPageAsPage).add_block(_NeedsPage).run()
    assert isinstance(report.results[Page], LoginPage)
    assert LoginPage not in report.results
    assert report.results[str] == "LoginPage"


def test_instance_alias_satisfies_base_type() -> None:
    page = LoginPage()
    report = _builder().add_instance(page, as_type=Page).add_block(_NeedsPage).run()
    assert report.results[str] == "LoginPage"
    assert Page not in report.results


def test_later_result_of_same_type_wins() -> None:
    report = _builder().add_block(_IssueFirst).add_block(_IssueSecond).add_block(_ReadToken).run()
    assert report.results[str] == "second"
    assert report.results[Token].value == "second"


def test_failure_stops_the_run_and_surfaces_original_error() -> None:
    trail = Trail()
    builder = _builder(trail).add_block(_StepA).add_block(_Fails).add_block(_StepC)
    with pytest.raises(ValueError, match="element not found"):
        builder.run()
    assert trail.steps == ["A", "fails"]
    report = builder.last_report
    assert report is not None
    assert not report.succeeded
    assert isinstance(report.error, ValueError)
    assert [r.state for r in report.records] == [
        BlockState.COMPLETED,
        BlockState.FAILED,
        BlockState.PENDING,
    ]


def test_explicit_arguments_supply_the_entry_point() -> None:
    report = _builder().add_block(_Login, "alice", "s3cret").add_block(_ReadToken).run()
    assert report.results[str] == "alice:s3cret"


def test_partial_explicit_arguments_fail_before_any_block_runs() -> None:
    trail = Trail()
    builder = _builder(trail).add_block(_StepA).add_block(_Login, "alice")
    with pytest.raises(ConfigurationError, match="1 explicit argument"):
        builder.run()
    assert trail.steps == []


def test_invalid_block_fails_at_build() -> None:
    class _NoEntry:
        def run(self) -> None:
            return None

    with pytest.raises(ConfigurationError):
        _builder().add_block(_NoEntry).build()


def test_scoped_service_shared_within_run_and_fresh_per_run() -> None:
    trail = Trail()
    created: list[Session] = []

    def session_factory(ctx: object) -> Session:
        session = Session()
        created.append(session)
        return session

    builder = (
        _builder(trail)
        .add_service(Session, session_factory, Lifetime.SCOPED)
        .add_block(_UsesSession, name="first")
        .add_block(_UsesSession, name="second")
    )
    builder.run()
    assert trail.steps[0] == trail.steps[1]
    assert len(created) == 1
    assert created[0].closed

    builder.run()
    assert len(created) == 2
    assert trail.steps[2] != trail.steps[0]


def test_scoped_service_released_when_run_fails() -> None:
    trail = Trail()
    created: list[Session] = []

    def session_factory(ctx: object) -> Session:
        created.append(Session())
        return created[-1]

    builder = _builder(trail).add_service(Session, session_factory).add_block(_UsesSession).add_block(_Fails)
    with pytest.raises(ValueError):
        builder.run()
    assert created[0].closed


def test_teardown_failure_is_raised_after_successful_run() -> None:
    builder = _builder().add_service(_Leaky, _Leaky).add_block(_UsesLeaky)
    with pytest.raises(OSError, match="driver already quit"):
        builder.run()


def test_singleton_is_shared_across_runs_until_close() -> None:
    trail = Trail()
    created: list[Session] = []

    def session_factory(ctx: object) -> Session:
        created.append(Session())
        return created[-1]

    builder = (
        _builder(trail)
        .add_service(Session, session_factory, Lifetime.SINGLETON)
        .add_block(_UsesSession)
    )
    builder.run()
    builder.run()
    assert len(created) == 1
    assert trail.steps[0] == trail.steps[1]
    assert not created[0].closed
    builder.close()
    assert created[0].closed


def test_registered_logger_replaces_default() -> None:
    recorder = _RecordingLogger()
    builder = _builder().add_logger(recorder).add_block(_IssueFirst)
    builder.run()
    kinds = [kind for kind, _, _ in recorder.events]
    assert kinds[0] == "info"
    assert "output" in kinds
    default_sink = builder.logger.sink  # type: ignore[attr-defined]
    assert isinstance(default_sink, MemoryLogSink)
    assert default_sink.messages == []


def test_default_logger_records_lifecycle() -> None:
    builder = _builder().add_block(_IssueFirst)
    builder.run()
    sink = builder.logger.sink  # type: ignore[attr-defined]
    messages = [m.message for m in sink.for_block("_IssueFirst")]
    assert messages[0] == "Starting test block _IssueFirst"
    assert messages[-1] == "Completed test block _IssueFirst"
    assert all(m.fields["run"] == "case" for m in sink.messages)


def test_from_yaml_applies_run_name_and_logging(tmp_path: Path) -> None:
    config = tmp_path / "engine.yml"
    config.write_text(
        "run_name: checkout-smoke\n"
        "logging:\n"
        "  sink: memory\n"
        "  level: error\n",
        encoding="utf-8",
    )
    builder = TestBuilder.from_yaml(config).add_block(_IssueFirst)
    report = builder.run()
    assert report.run_name == "checkout-smoke"
    assert builder.logger.sink.messages == []  # type: ignore[attr-defined]


def test_unserializable_values_do_not_change_the_outcome() -> None:
    builder = _builder().add_block(_ProducesOpaque).add_block(_ConsumesOpaque)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        report = builder.run()

    assert report.succeeded
    assert report.results[str] == "handle 42"
    sink = builder.logger.sink  # type: ignore[attr-defined]
    outputs = {m.fields["block"]: m.message for m in sink.for_channel("output")}
    assert outputs["_ProducesOpaque"] == SERIALIZATION_FALLBACK
    assert sink.for_channel("input")[-1].message == SERIALIZATION_FALLBACK
    degraded = [m for m in sink.for_block("_ProducesOpaque") if "Unable to serialize Opaque" in m.message]
    assert degraded


def test_factory_returning_none_fails_before_block_runs() -> None:
    trail = Trail()
    builder = _builder(trail).add_service(Driver, lambda ctx: None).add_block(_UsesDriver)
    with pytest.raises(UnresolvedDependencyError) as excinfo:
        builder.run()
    assert excinfo.value.required is Driver
    assert trail.steps == []
    assert builder.last_report is not None
    assert builder.last_report.record("_UsesDriver").state is BlockState.FAILED
