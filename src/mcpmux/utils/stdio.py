"""
stdio transport that routes the server's stderr through the mcpmux logger.
"""

import subprocess
from contextlib import asynccontextmanager

import anyio
import mcp.types as types
from anyio.streams.text import TextReceiveStream
from mcp.client.stdio import StdioServerParameters, get_default_environment
from mcp.shared.message import SessionMessage

from mcpmux.utils.logging import get_logger

logger = get_logger(__name__)

PROCESS_TERMINATION_TIMEOUT = 2.0


@asynccontextmanager
async def stdio_client_with_rich_stderr(server: StdioServerParameters):
    """
    Launch a server process and exchange JSON-RPC messages over its stdin/stdout.

    Each stderr line is logged at DEBUG, or at ERROR when it looks like an error.

    Args:
        server: The server parameters for the stdio connection.

    Yields:
        A tuple of (read_stream, write_stream) for communication with the server.
    """
    read_stream_writer, read_stream = anyio.create_memory_object_stream(0)
    write_stream, write_stream_reader = anyio.create_memory_object_stream(0)

    try:
        process = await anyio.open_process(
            [server.command, *server.args],
            env=server.env if server.env is not None else get_default_environment(),
            cwd=server.cwd,
            stderr=subprocess.PIPE,
        )
    except Exception as e:
        logger.error(f"Failed to open process '{server.command}': {e}")
        await read_stream_writer.aclose()
        await write_stream_reader.aclose()
        raise

    logger.debug(f"Started process '{server.command}' with PID: {process.pid}")

    async def stdout_reader():
        assert process.stdout, "Opened process is missing stdout"
        try:
            async with read_stream_writer:
                buffer = ""
                async for chunk in TextReceiveStream(
                    process.stdout,
                    encoding=server.encoding,
                    errors=server.encoding_error_handler,
                ):
                    lines = (buffer + chunk).split("\n")
                    buffer = lines.pop()

                    for line in lines:
                        if not line:
                            continue
                        try:
                            message = types.JSONRPCMessage.model_validate_json(line)
                        except Exception as exc:
                            await read_stream_writer.send(exc)
                            continue

                        await read_stream_writer.send(SessionMessage(message))
        except anyio.ClosedResourceError:
            logger.debug(f"Stdout stream closed for {server.command}")

    async def stderr_reader():
        assert process.stderr, "Opened process is missing stderr"
        try:
            async for chunk in TextReceiveStream(
                process.stderr,
                encoding=server.encoding,
                errors=server.encoding_error_handler,
            ):
                for stderr_line in chunk.splitlines():
                    if not stderr_line.strip():
                        continue
                    if "[ERROR]" in stderr_line or "Error" in stderr_line:
                        logger.error(f"MCP SERVER STDERR: {stderr_line}")
                    else:
                        logger.debug(f"MCP SERVER STDERR: {stderr_line}")
        except anyio.ClosedResourceError:
            logger.debug(f"Stderr stream closed for {server.command}")

    async def stdin_writer():
        assert process.stdin, "Opened process is missing stdin"
        try:
            async with write_stream_reader:
                async for session_message in write_stream_reader:
                    json = session_message.message.model_dump_json(
                        by_alias=True, exclude_none=True
                    )
                    await process.stdin.send(
                        (json + "\n").encode(
                            encoding=server.encoding,
                            errors=server.encoding_error_handler,
                        )
                    )
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug(f"Stdin stream closed for {server.command}")

    async with anyio.create_task_group() as tg:
        tg.start_soon(stdout_reader)
        tg.start_soon(stdin_writer)
        tg.start_soon(stderr_reader)
        try:
            yield read_stream, write_stream
        finally:
            tg.cancel_scope.cancel()
            await _terminate(process, server.command)
            await read_stream.aclose()
            await write_stream.aclose()


async def _terminate(process, command: str) -> None:
    """Stop the server process, escalating to kill if it does not exit in time."""
    with anyio.CancelScope(shield=True):
        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            with anyio.move_on_after(PROCESS_TERMINATION_TIMEOUT):
                await process.wait()
            if process.returncode is None:
                logger.warning(f"Process '{command}' did not exit, killing it")
                process.kill()
                await process.wait()
        await process.aclose()
        logger.debug(f"Process '{command}' exited with code {process.returncode}")
