"""Local transport: run docker compose commands and write files in the deploy dir."""

import asyncio
import logging
import os

logger = logging.getLogger(__name__)


async def _pump(pipe, lines, level):
    async for raw_line in pipe:
        line = raw_line.decode(errors="replace").rstrip("\n")
        logger.log(level, line)
        lines.append(line)


def make_run_cmd(deploy_dir, dry_run=False):
    """Create a run_cmd callable for local execution.

    run_cmd(command, stream=True, timeout=600, log_output=False, input_text=None)
    returns (returncode, stdout, stderr). With stream=True and no log_output the
    child inherits our stdout/stderr and nothing is captured.
    """

    async def run_cmd(command, stream=True, timeout=600, log_output=False, input_text=None):
        if dry_run:
            suffix = f" <<< ({len(input_text)} bytes)" if input_text is not None else ""
            logger.info(f"[dry-run] {command}{suffix}")
            return 0, "", ""

        proc = None
        try:
            use_pipe = not stream or log_output
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=deploy_dir,
                stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE if use_pipe else None,
                stderr=asyncio.subprocess.PIPE if use_pipe else None,
            )

            if log_output:
                if input_text is not None:
                    proc.stdin.write(input_text.encode())
                    await proc.stdin.drain()
                    proc.stdin.close()
                stdout_lines, stderr_lines = [], []
                await asyncio.wait_for(
                    asyncio.gather(
                        _pump(proc.stdout, stdout_lines, logging.INFO),
                        _pump(proc.stderr, stderr_lines, logging.ERROR),
                        proc.wait(),
                    ),
                    timeout=timeout,
                )
                return proc.returncode, "\n".join(stdout_lines), "\n".join(stderr_lines)

            data = input_text.encode() if input_text is not None else None
            stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(data), timeout=timeout)
            stdout = stdout_bytes.decode(errors="replace") if stdout_bytes else ""
            stderr = stderr_bytes.decode(errors="replace") if stderr_bytes else ""
            return proc.returncode, stdout, stderr
        except TimeoutError:
            logger.error(f"Command timed out after {timeout}s: {command}")
            if proc is not None:
                proc.kill()
                await proc.wait()
            return 1, "", ""
        except OSError as e:
            logger.error(f"Error running command: {e}")
            return 1, "", str(e)

    return run_cmd


def make_write_file(deploy_dir, dry_run=False):
    """Create a write_file callable for writes relative to the deploy dir."""

    async def write_file(path, content):
        full_path = os.path.join(deploy_dir, path)
        if dry_run:
            logger.info(f"[dry-run] write {full_path}")
            return
        os.makedirs(os.path.dirname(full_path) or ".", exist_ok=True)
        tmp_path = f"{full_path}.tmp"
        with open(tmp_path, "w") as f:
            f.write(content)
        os.replace(tmp_path, full_path)

    return write_file
