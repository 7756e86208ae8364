"""Tests for the pg_dump collaborator."""

import stat
from pathlib import Path

from backup_guard.config import DatabaseSettings
from backup_guard.dump import EXIT_COMMAND_NOT_FOUND, EXIT_TIMEOUT, PgDumpRunner

FAKE_PG_DUMP = """#!/bin/sh
out=""
for arg in "$@"; do
    case "$arg" in
        --file=*) out="${arg#--file=}" ;;
    esac
done
echo "pg_dump: connecting as $PGUSER_HINT" >&2
printf 'PGDMP' > "$out"
exit ${FAKE_EXIT:-0}
"""

SLOW_PG_DUMP = """#!/bin/sh
sleep 5
"""


def _script(directory: Path, name: str, body: str) -> Path:
    path = directory / name
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


class TestBuildCommand:
    """Tests for pg_dump argument construction."""

    def test_custom_format_without_password(self) -> None:
        runner = PgDumpRunner(host="db.internal", port=5433, user="backup")
        cmd = runner.build_command("govt", Path("/backups/2026-01-31/.VISTAR-x.tmp"))

        assert cmd[0] == "pg_dump"
        assert "--host=db.internal" in cmd
        assert "--port=5433" in cmd
        assert "--username=backup" in cmd
        assert "--format=custom" in cmd
        assert "--file=/backups/2026-01-31/.VISTAR-x.tmp" in cmd
        assert "--no-password" in cmd
        assert cmd[-1] == "govt"
        assert not any("password=" in part.lower() for part in cmd)

    def test_from_settings(self) -> None:
        settings = DatabaseSettings(
            host="db", port=6432, user="ops", passfile=Path("/etc/backup-guard/.pgpass"),
            dump_command="/usr/lib/postgresql/16/bin/pg_dump", timeout_seconds=600,
        )
        runner = PgDumpRunner.from_settings(settings)
        assert runner.dump_command == "/usr/lib/postgresql/16/bin/pg_dump"
        assert runner.passfile == Path("/etc/backup-guard/.pgpass")
        assert runner.timeout_seconds == 600
        assert runner._environment()["PGPASSFILE"] == "/etc/backup-guard/.pgpass"


class TestRun:
    """Tests for running the dump process."""

    def test_successful_run(self, temp_dir: Path) -> None:
        script = _script(temp_dir, "pg_dump", FAKE_PG_DUMP)
        out = temp_dir / "dump.tmp"
        sink = temp_dir / "logs" / "backup_errors.log"

        result = PgDumpRunner(dump_command=str(script)).run("govt", out, sink)

        assert result.exit_status == 0
        assert result.command[0] == str(script)
        assert out.read_bytes() == b"PGDMP"
        assert "pg_dump: connecting" in sink.read_text()

    def test_nonzero_exit_passed_through(self, temp_dir: Path, monkeypatch) -> None:
        monkeypatch.setenv("FAKE_EXIT", "3")
        script = _script(temp_dir, "pg_dump", FAKE_PG_DUMP)

        result = PgDumpRunner(dump_command=str(script)).run(
            "govt", temp_dir / "dump.tmp", temp_dir / "err.log"
        )

        assert result.exit_status == 3

    def test_error_sink_appended(self, temp_dir: Path) -> None:
        script = _script(temp_dir, "pg_dump", FAKE_PG_DUMP)
        sink = temp_dir / "err.log"
        sink.write_text("earlier run\n")

        PgDumpRunner(dump_command=str(script)).run("govt", temp_dir / "dump.tmp", sink)

        content = sink.read_text()
        assert content.startswith("earlier run\n")
        assert "pg_dump: connecting" in content

    def test_command_not_found(self, temp_dir: Path) -> None:
        result = PgDumpRunner(dump_command=str(temp_dir / "no-such-pg_dump")).run(
            "govt", temp_dir / "dump.tmp", temp_dir / "err.log"
        )
        assert result.exit_status == EXIT_COMMAND_NOT_FOUND

    def test_timeout(self, temp_dir: Path) -> None:
        script = _script(temp_dir, "slow_dump", SLOW_PG_DUMP)
        result = PgDumpRunner(dump_command=str(script), timeout_seconds=0.2).run(
            "govt", temp_dir / "dump.tmp", temp_dir / "err.log"
        )
        assert result.exit_status == EXIT_TIMEOUT
