"""Process execution with streamed output handling.

Long-running external tools (the image-mastering tool in particular) print
progress for minutes. ``run_command`` streams both output pipes line by line
through a middleware object while the process runs, and returns everything
that was captured once it exits.

Example:
    ```python
    from vioinject.utils.stream_process import run_command, LoggingOutputMiddleware

    return_code, stdout, stderr = run_command(
        ["oscdimg", "-h"], middleware=LoggingOutputMiddleware("oscdimg")
    )
    ```
"""

import logging
import shlex
import subprocess
from threading import Thread
from typing import IO, Generic, TypeAlias, TypeVar, cast


T = TypeVar("T")

# (return_code, stdout, stderr)
ProcessResult: TypeAlias = tuple[int, list[T], list[T]]


class OutputMiddleware(Generic[T]):
    """Base class for processing command output streams.

    Type parameter T represents the return type of the process method,
    allowing middleware to transform strings into other types if needed.
    Returning None drops the line from the captured output.
    """

    def process(self, line: str, stream_type: str) -> T:
        """Process a line of output from a subprocess stream.

        Args:
            line: A line of text from the process output
            stream_type: Either "stdout" or "stderr"
        """
        raise NotImplementedError()


class LoggingOutputMiddleware(OutputMiddleware[str]):
    """Forward every line to a logger at DEBUG and keep it unchanged."""

    def __init__(self, tool_name: str, logger: logging.Logger | None = None) -> None:
        self.tool_name = tool_name
        self.logger = logger or logging.getLogger(__name__)

    def process(self, line: str, stream_type: str) -> str:
        self.logger.debug("[%s:%s] %s", self.tool_name, stream_type, line)
        return line


def run_command(
    cmd: str | list[str],
    middleware: OutputMiddleware[T] | None = None,
) -> ProcessResult[T]:
    """Run a command and process its output through middleware.

    Args:
        cmd: Command to run, either as a string or list of arguments
        middleware: Middleware for processing output (LoggingOutputMiddleware if None)

    Returns:
        Tuple of return code, processed stdout lines and processed stderr lines

    Raises:
        OSError: If the executable cannot be started
    """
    if isinstance(cmd, str):
        cmd = shlex.split(cmd)

    if middleware is None:
        middleware = cast(OutputMiddleware[T], LoggingOutputMiddleware(cmd[0]))

    process = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
        errors="replace",
    )

    def stream_output(stream: IO[str], stream_type: str, captured: list[T]) -> None:
        for line in iter(stream.readline, ""):
            processed = middleware.process(line.rstrip(), stream_type)
            if processed is not None:
                captured.append(processed)
        stream.close()

    stdout_lines: list[T] = []
    stderr_lines: list[T] = []

    threads = [
        Thread(
            target=stream_output,
            args=(process.stdout, "stdout", stdout_lines),
            daemon=True,
        ),
        Thread(
            target=stream_output,
            args=(process.stderr, "stderr", stderr_lines),
            daemon=True,
        ),
    ]
    for thread in threads:
        thread.start()

    try:
        return_code = process.wait()
    except BaseException:
        # Interrupted while waiting; do not leave the tool running
        process.kill()
        process.wait()
        raise

    for thread in threads:
        thread.join()

    return return_code, stdout_lines, stderr_lines
