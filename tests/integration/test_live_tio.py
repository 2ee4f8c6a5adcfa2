import os

import pytest

from tio_runner import EndpointResolver, RunOptions, run_code

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_TIO_TESTS") != "1", reason="Live tio.run tests disabled"
)


@pytest.mark.asyncio
async def test_python_echo_round_trip() -> None:
    result = await run_code(
        "import sys\nprint(sys.stdin.read().upper(), *sys.argv[1:])",
        RunOptions(language="python3", stdin="hello", argv=["x", "y"], timeout_ms=20000),
        resolver=EndpointResolver(),
    )

    assert result.timed_out is False
    assert result.exit_code == 0
    assert result.output.strip() == "HELLO x y"
    assert result.real_time >= 0.0


@pytest.mark.asyncio
async def test_nonzero_exit_code_is_reported() -> None:
    result = await run_code(
        "raise SystemExit(3)",
        RunOptions(language="python3", timeout_ms=20000),
        resolver=EndpointResolver(),
    )

    assert result.exit_code == 3
