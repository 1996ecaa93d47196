"""
Stdio Session Transport

Owns the MCP tool server subprocess and its byte channel. Messages are
newline-delimited JSON-RPC objects on stdin/stdout; stderr is relayed to
the gateway log at the level each line was written with.

The transport reports exactly one close event, whether the process exited,
a stream broke, or close() was called.
"""

import asyncio
import json
from typing import Any, Callable, Mapping, Optional, Sequence

from skysync.configs import get_logger, get_timeout, parse_relayed_line
from skysync.configs.constants import MAX_MESSAGE_BYTES
from skysync.exceptions import SessionLost, SessionStartError

logger = get_logger("session.transport")
stderr_logger = get_logger("session.stderr")

MessageHandler = Callable[[dict[str, Any]], None]
CloseHandler = Callable[[str], None]


class StdioTransport:
    """Duplex newline-delimited JSON channel to a subprocess."""

    def __init__(
        self,
        command: Sequence[str],
        env: Mapping[str, str],
        on_message: MessageHandler,
        on_close: CloseHandler,
        cwd: Optional[str] = None,
        max_message_bytes: int = MAX_MESSAGE_BYTES,
    ):
        self.command = list(command)
        self.env = dict(env)
        self.cwd = cwd
        self._on_message = on_message
        self._on_close = on_close
        self._max_message_bytes = max_message_bytes
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._tasks: list[asyncio.Task] = []
        self._write_lock = asyncio.Lock()
        self._closed = False

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc else None

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None and not self._closed

    async def start(self) -> None:
        """Launch the subprocess and start the reader tasks."""
        logger.info(f"Launching MCP server: {' '.join(self.command)}")
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
                cwd=self.cwd,
                limit=self._max_message_bytes,
            )
        except OSError as e:
            raise SessionStartError(
                f"Failed to launch MCP server: {e}",
                {"command": " ".join(self.command)},
            ) from e

        logger.info(f"MCP server started (pid={self._proc.pid})")
        self._tasks = [
            asyncio.create_task(self._read_stdout(), name="mcp-stdout"),
            asyncio.create_task(self._relay_stderr(), name="mcp-stderr"),
        ]

    async def send(self, message: dict[str, Any]) -> None:
        """Write one framed message. Raises SessionLost if the pipe is gone."""
        if not self.running or self._proc is None or self._proc.stdin is None:
            raise SessionLost("MCP server is not running")

        data = (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")
        async with self._write_lock:
            try:
                self._proc.stdin.write(data)
                await self._proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                self._notify_closed(f"write failed: {e}")
                raise SessionLost(f"MCP server pipe closed: {e}") from e

    async def close(self) -> None:
        """Terminate the subprocess and stop the reader tasks."""
        proc = self._proc
        if proc is not None and proc.returncode is None:
            logger.info(f"Stopping MCP server (pid={proc.pid})")
            if proc.stdin is not None:
                proc.stdin.close()
            try:
                proc.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(proc.wait(), timeout=get_timeout("mcp_shutdown"))
            except asyncio.TimeoutError:
                logger.warning(f"MCP server did not exit, killing (pid={proc.pid})")
                proc.kill()
                await proc.wait()

        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        self._notify_closed("transport closed")

    async def _read_stdout(self) -> None:
        assert self._proc is not None and self._proc.stdout is not None
        stdout = self._proc.stdout
        reason = "MCP server closed stdout"
        try:
            while True:
                try:
                    line = await stdout.readline()
                except ValueError as e:
                    # Message exceeded the stream limit; framing is lost
                    reason = f"transport error: {e}"
                    logger.error(f"MCP stream error: {e}")
                    break
                if not line:
                    break
                line = line.strip()
                if not line:
                    continue
                try:
                    message = json.loads(line)
                except ValueError:
                    logger.warning(f"Discarding non-JSON line from MCP server: {line[:200]!r}")
                    continue
                if not isinstance(message, dict):
                    logger.warning("Discarding non-object message from MCP server")
                    continue
                try:
                    self._on_message(message)
                except Exception:
                    logger.exception("Message handler failed")
        except asyncio.CancelledError:
            raise
        except (ConnectionResetError, BrokenPipeError) as e:
            reason = f"transport error: {e}"

        returncode = None
        if self._proc.returncode is None and reason.startswith("MCP server closed"):
            try:
                returncode = await asyncio.wait_for(self._proc.wait(), timeout=get_timeout("mcp_shutdown"))
            except asyncio.TimeoutError:
                returncode = None
        else:
            returncode = self._proc.returncode
        if returncode is not None:
            reason = f"MCP server exited with code {returncode}"
        self._notify_closed(reason)

    async def _relay_stderr(self) -> None:
        assert self._proc is not None and self._proc.stderr is not None
        stderr = self._proc.stderr
        while True:
            try:
                line = await stderr.readline()
            except ValueError:
                continue
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                level, message = parse_relayed_line(text)
                stderr_logger.log(level, message)

    def _notify_closed(self, reason: str) -> None:
        if self._closed:
            return
        self._closed = True
        logger.warning(f"MCP transport closed: {reason}")
        self._on_close(reason)
