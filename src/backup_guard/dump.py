"""
Database dump collaborator.

The capture engine only needs "produce a dump of the source database at this
path and tell me the exit status". PgDumpRunner provides that with pg_dump in
custom format; anything honouring the DumpRunner protocol can replace it.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Shell conventions, so operators reading logs see familiar codes
EXIT_COMMAND_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass
class DumpResult:
    """Outcome of one dump invocation."""

    exit_status: int
    command: list[str] = field(default_factory=list)


class DumpRunner(Protocol):
    """Anything that can write a dump of a database to a file."""

    def run(self, source_database: str, output_path: Path, error_sink: Path) -> DumpResult:
        ...


class PgDumpRunner:
    """
    Runs pg_dump in custom (binary) format.

    Credentials come from the ambient environment (a .pgpass file pointed to
    by PGPASSFILE); no password is ever placed on the command line.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        user: str = "postgres",
        passfile: Path | None = None,
        dump_command: str = "pg_dump",
        timeout_seconds: float | None = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.passfile = passfile
        self.dump_command = dump_command
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings) -> "PgDumpRunner":
        """Build from a DatabaseSettings section."""
        return cls(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            passfile=settings.passfile,
            dump_command=settings.dump_command,
            timeout_seconds=settings.timeout_seconds,
        )

    def build_command(self, source_database: str, output_path: Path) -> list[str]:
        return [
            self.dump_command,
            f"--host={self.host}",
            f"--port={self.port}",
            f"--username={self.user}",
            "--format=custom",
            f"--file={output_path}",
            "--no-owner",
            "--no-acl",
            "--no-password",
            source_database,
        ]

    def _environment(self) -> dict[str, str]:
        env = os.environ.copy()
        if self.passfile is not None:
            env["PGPASSFILE"] = str(self.passfile)
        return env

    def run(self, source_database: str, output_path: Path, error_sink: Path) -> DumpResult:
        """Run pg_dump, appending its stderr to `error_sink`."""
        cmd = self.build_command(source_database, output_path)
        Path(error_sink).parent.mkdir(parents=True, exist_ok=True)

        with open(error_sink, "ab") as err:
            try:
                completed = subprocess.run(
                    cmd,
                    stdout=subprocess.DEVNULL,
                    stderr=err,
                    env=self._environment(),
                    timeout=self.timeout_seconds,
                    check=False,
                    shell=False,
                )
            except FileNotFoundError:
                logger.error(f"Dump command not found: {self.dump_command}")
                return DumpResult(exit_status=EXIT_COMMAND_NOT_FOUND, command=cmd)
            except subprocess.TimeoutExpired:
                logger.error(f"Dump timed out after {self.timeout_seconds}s")
                return DumpResult(exit_status=EXIT_TIMEOUT, command=cmd)

        return DumpResult(exit_status=completed.returncode, command=cmd)
