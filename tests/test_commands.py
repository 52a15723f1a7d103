"""
Tests for external command execution.
"""

import pytest
import sys

from ces.utils.commands import run_command
from ces.utils.errors import ExternalCommandError


class TestRunCommand:

    @pytest.mark.asyncio
    async def test_collects_output(self, temp_dir):
        result = await run_command(
            [sys.executable, "-c", "import os, sys; print(os.getcwd()); sys.stderr.write('warn'); sys.exit(2)"],
            cwd=temp_dir
        )

        assert result.returncode == 2
        assert not result.ok
        assert result.stdout.strip() == str(temp_dir.resolve())
        assert result.stderr == "warn"

    @pytest.mark.asyncio
    async def test_missing_program(self):
        with pytest.raises(ExternalCommandError) as exc_info:
            await run_command(["ces-no-such-program-xyz"])

        assert exc_info.value.command == "ces-no-such-program-xyz"

    @pytest.mark.asyncio
    async def test_timeout_kills(self):
        with pytest.raises(ExternalCommandError) as exc_info:
            await run_command([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.2)

        assert "timed out" in exc_info.value.message
