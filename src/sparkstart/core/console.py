#!/usr/bin/env python3
"""Module to run console commands.

This module provides a class to run shell commands on the batch host,
either synchronously or as a detached background process.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""
# built-in modules
import os
import shlex
import subprocess
import typing
from pathlib import Path

# project modules
from sparkstart.core.errors import CommandError


class Console:
    """Class to run console commands.

    Attributes:
        shellVerbose (bool): The shell verbose flag.
        live_output (bool): The live output flag.
    """
    def __init__(
            self,
            shellVerbose: bool=True,
            live_output: bool=False
        ) -> None:
        """Constructor of the Console class.

        Args:
            shellVerbose (bool): The shell verbose flag.
            live_output (bool): The live output flag.
        """
        self.shellVerbose = shellVerbose
        self.live_output = live_output

    def sh(
            self,
            command: typing.Union[str, typing.Sequence[str]],
            canFail: bool=False,
            timeout: int=120,
            secret: bool=False,
            prefix: str="",
            env: typing.Optional[typing.Dict[str, str]]=None
        ) -> str:
        """Run shell command.

        Args:
            command: The shell command, or an argv list which is quoted with shlex.
            canFail (bool): The flag to allow failure.
            timeout (int): The timeout in seconds.
            secret (bool): The flag to hide the command.
            prefix (str): The prefix of the output.
            env: The environment variables.

        Returns:
            str: The output of the shell command.

        Raises:
            CommandError: If the shell command fails or times out.
        """
        if not isinstance(command, str):
            command = shlex.join(str(arg) for arg in command)

        # Print the command if shellVerbose is True
        if self.shellVerbose and not secret:
            print("> " + command, flush=True)

        # Run the shell command in BINARY mode to handle UTF-8 safely
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            shell=True,
            universal_newlines=False,
            bufsize=0,
            env=env,
        )

        shown = "<secret command>" if secret else command
        try:
            if not self.live_output:
                raw_outs, _ = proc.communicate(timeout=timeout)
                outs = raw_outs.decode('utf-8', errors='replace')
            else:
                lines = []
                for raw_line in iter(proc.stdout.readline, b''):
                    line = raw_line.decode('utf-8', errors='replace')
                    print(prefix + line, end="")
                    lines.append(line)
                outs = "".join(lines)
                proc.stdout.close()
                proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            raise CommandError(
                f"Subprocess '{shown}' timed out after {timeout}s",
                command=shown,
                cause=exc,
            ) from exc

        if proc.returncode != 0 and not canFail:
            raise CommandError(
                f"Subprocess '{shown}' failed with exit code {proc.returncode}",
                command=shown,
                returncode=proc.returncode,
                output=outs.strip(),
            )

        return outs.strip()

    def spawn(
            self,
            args: typing.Sequence[str],
            log_path: Path,
            env: typing.Optional[typing.Dict[str, str]]=None
        ) -> subprocess.Popen:
        """Start a detached background process.

        The child runs in its own session so that it survives the caller and
        can be signalled as a process group. Output is appended to log_path.

        Args:
            args: The argv of the process.
            log_path: File receiving stdout and stderr.
            env: The environment variables.

        Returns:
            subprocess.Popen: Handle of the started process.
        """
        args = [str(arg) for arg in args]
        if self.shellVerbose:
            print("> " + shlex.join(args) + " &", flush=True)

        log_file = open(log_path, "ab")
        try:
            return subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                env=env,
                start_new_session=True,
            )
        except OSError as exc:
            raise CommandError(
                f"Could not start '{args[0]}': {exc}",
                command=shlex.join(args),
                cause=exc,
            ) from exc
        finally:
            # the child holds its own descriptor
            log_file.close()


def merged_env(extra: typing.Dict[str, str]) -> typing.Dict[str, str]:
    """Return a copy of os.environ updated with extra."""
    env = dict(os.environ)
    env.update({key: str(value) for key, value in extra.items()})
    return env
