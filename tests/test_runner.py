import asyncio
import zlib
from pathlib import Path

import pytest

from fakes import FakeResponse, FakeSession, diagnostics_block, tio_payload
from tio_runner import (
    CancellationError,
    CancelSignal,
    EndpointResolver,
    ExecutionRegistry,
    RunOptions,
    RunnerSettings,
    kill_running,
    run_code,
    run_test_case,
)
from tio_runner.runner import RUNNING_EXECUTIONS, normalize_options


@pytest.mark.parametrize(("requested", "effective"), [(1, 500), (500, 500), (750, 750)])
def test_timeout_floor_applies_only_below_minimum(requested: int, effective: int) -> None:
    request = normalize_options(RunOptions(language="python3", timeout_ms=requested), RunnerSettings())

    assert request.timeout_ms == effective


def test_missing_options_are_normalized() -> None:
    request = normalize_options(RunOptions(language="python3", stdin=None), RunnerSettings())  # type: ignore[arg-type]

    assert request.stdin == ""
    assert request.argv == []
    assert request.cflags == []
    assert request.timeout_ms == 3000


@pytest.mark.asyncio
async def test_run_code_returns_decoded_metrics() -> None:
    session = FakeSession()

    result = await run_code(
        "print(input())",
        RunOptions(language="python3", stdin="hello", argv=["--flag"]),
        resolver=EndpointResolver(),
        session=session,
    )

    assert result.output == "hello"
    assert result.timed_out is False
    assert result.exit_code == 0
    assert result.cpu_share == 33.3
    frame = zlib.decompress(session.posts[0][1], -zlib.MAX_WBITS)
    assert b"Vargs\x001\x00--flag\x00Vlang\x001\x00python3\x00" in frame
    assert frame.endswith(b"F.input.tio\x005\x00helloR")


@pytest.mark.asyncio
async def test_resolver_is_shared_across_runs() -> None:
    session = FakeSession()
    resolver = EndpointResolver()

    await run_code("1", RunOptions(language="python3"), resolver=resolver, session=session)
    await run_code("2", RunOptions(language="python3"), resolver=resolver, session=session)

    assert len(session.gets) == 2
    assert len(session.posts) == 2


@pytest.mark.asyncio
async def test_timeout_yields_sentinel_result_with_floor() -> None:
    session = FakeSession(post_delay=5.0)

    result = await run_code(
        "while True: pass",
        RunOptions(language="python3", timeout_ms=1),
        resolver=EndpointResolver(),
        session=session,
    )

    assert result.timed_out is True
    assert result.exit_code == 124
    assert result.cpu_share == 0.0
    assert result.real_time == result.user_time == result.sys_time == 0.5
    assert result.output == "Request timed out after 500ms"


@pytest.mark.asyncio
async def test_pre_cancelled_signal_aborts_before_any_fetch() -> None:
    session = FakeSession()
    signal = CancelSignal()
    signal.cancel()

    with pytest.raises(CancellationError):
        await run_code(
            "print(1)",
            RunOptions(language="python3", cancel_signal=signal),
            resolver=EndpointResolver(),
            session=session,
        )
    assert session.gets == []
    assert session.posts == []


@pytest.mark.asyncio
async def test_run_test_case_maps_language_and_reports_run(tmp_path: Path) -> None:
    source = tmp_path / "main.cpp"
    source.write_text("int main() { return 0; }", encoding="utf-8")
    session = FakeSession(
        post_response=FakeResponse(body=tio_payload("3\n", diagnostics_block(real="0.0456")))
    )
    registry = ExecutionRegistry()

    run = await run_test_case(
        source,
        "1 2\n",
        language="cpp",
        compiler="clang++",
        registry=registry,
        resolver=EndpointResolver(),
        session=session,
    )

    assert run.stdout == "3\n"
    assert run.code == 0
    assert run.signal is None
    assert run.time_ms == 46
    assert len(registry) == 0
    frame = zlib.decompress(session.posts[0][1], -zlib.MAX_WBITS)
    assert b"Vlang\x001\x00cpp-clang\x00" in frame


@pytest.mark.asyncio
async def test_run_test_case_without_language_makes_no_request(tmp_path: Path) -> None:
    session = FakeSession()

    run = await run_test_case(tmp_path / "main.zig", "", language="zig", session=session)

    assert run.signal == "ERROR"
    assert "Unable to resolve a tio.run language" in run.stderr
    assert session.gets == []


@pytest.mark.asyncio
async def test_run_test_case_reports_errors(tmp_path: Path) -> None:
    source = tmp_path / "main.py"
    source.write_text("print(1)", encoding="utf-8")
    session = FakeSession(post_response=FakeResponse(body=tio_payload("1", "no metrics here")))

    run = await run_test_case(
        source,
        "",
        tio_language="python3",
        resolver=EndpointResolver(),
        session=session,
    )

    assert run.signal == "ERROR"
    assert "diagnostics" in run.stderr


@pytest.mark.asyncio
async def test_run_test_case_reports_missing_source(tmp_path: Path) -> None:
    registry = ExecutionRegistry()

    run = await run_test_case(tmp_path / "missing.py", "", tio_language="python3", registry=registry)

    assert run.signal == "ERROR"
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_kill_running_aborts_in_flight_runs(tmp_path: Path) -> None:
    source = tmp_path / "main.py"
    source.write_text("import time; time.sleep(60)", encoding="utf-8")
    session = FakeSession(post_delay=5.0)
    resolver = EndpointResolver()

    runs = [
        asyncio.ensure_future(
            run_test_case(source, "", tio_language="python3", timeout_ms=5000, resolver=resolver, session=session)
        )
        for _ in range(2)
    ]
    while len(session.posts) < 2:
        await asyncio.sleep(0.01)
    assert len(RUNNING_EXECUTIONS) == 2

    assert kill_running() == 2
    results = await asyncio.gather(*runs)

    assert [run.signal for run in results] == ["ABORTED", "ABORTED"]
    assert all(run.stderr == "Execution aborted by user." for run in results)
    assert len(RUNNING_EXECUTIONS) == 0


@pytest.mark.asyncio
async def test_run_test_case_replaces_undecodable_source_bytes(tmp_path: Path) -> None:
    source = tmp_path / "main.c"
    source.write_bytes(b"int main(){/* \xff */}")
    session = FakeSession()

    run = await run_test_case(
        source,
        "",
        tio_language="c-gcc",
        resolver=EndpointResolver(),
        session=session,
    )

    assert run.signal is None
    assert run.stdout == "hello"
    frame = zlib.decompress(session.posts[0][1], -zlib.MAX_WBITS)
    assert "/* \ufffd */".encode("utf-8") in frame
