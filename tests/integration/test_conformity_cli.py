"""Integration tests for conformity CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from janitor.cli.main import app
from janitor.storage.records import ClusterRecordStorage
from tests.fixtures.resources import create_cluster


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    """Create record storage holding one non-conforming cluster."""
    records = tmp_path / "records"
    storage = ClusterRecordStorage(records)
    storage.save(
        create_cluster(
            excluded_rules=["ruleC"],
            conformities={"ruleA": ["groupX", "groupY"], "ruleB": []},
        )
    )
    return records


def invoke(runner: CliRunner, storage_dir: Path, *args: str):
    config_file = storage_dir.parent / "no-config.yaml"
    return runner.invoke(app, ["--config", str(config_file), "--storage-path", str(storage_dir), *args])


class TestConformityCLI:
    """Integration tests for conformity commands."""

    def test_show(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test showing a cluster record."""
        result = invoke(runner, storage_dir, "conformity", "show", "api", "--region", "us-east-1")

        assert result.exit_code == 0
        assert "api" in result.stdout
        assert "NOT CONFORMING" in result.stdout
        assert "ruleA" in result.stdout
        assert "FAIL" in result.stdout

    def test_show_missing_cluster(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test showing an unknown cluster exits with code 1."""
        result = invoke(runner, storage_dir, "conformity", "show", "nope", "--region", "us-east-1")

        assert result.exit_code == 1
        assert "No record" in result.stdout

    def test_list(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test listing records."""
        result = invoke(runner, storage_dir, "conformity", "list")

        assert result.exit_code == 0
        assert "api" in result.stdout
        assert "us-east-1" in result.stdout

    def test_list_flags_corrupt_record(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test corrupt records are listed as such instead of failing."""
        (storage_dir / "us-east-1" / "broken.yaml").write_text("cluster: broken\nregion: us-east-1\n")

        result = invoke(runner, storage_dir, "--quiet", "conformity", "list")

        assert result.exit_code == 0
        assert "CORRUPT" in result.stdout

    def test_exclude(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test excluding rules persists trimmed ids."""
        result = invoke(
            runner,
            storage_dir,
            "conformity",
            "exclude",
            "api",
            "--region",
            "us-east-1",
            "--rule",
            " ruleA ",
            "--rule",
            "ruleD",
        )

        assert result.exit_code == 0
        cluster = ClusterRecordStorage(storage_dir).load("api", "us-east-1")
        assert cluster.excluded_rules == frozenset({"ruleA", "ruleC", "ruleD"})

    def test_opt_out_and_undo(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test toggling the opt-out flag."""
        storage = ClusterRecordStorage(storage_dir)

        result = invoke(runner, storage_dir, "conformity", "opt-out", "api", "--region", "us-east-1")
        assert result.exit_code == 0
        assert storage.load("api", "us-east-1").cluster_conformity.is_opt_out_of_conformity is True

        result = invoke(runner, storage_dir, "conformity", "opt-out", "api", "--region", "us-east-1", "--undo")
        assert result.exit_code == 0
        assert storage.load("api", "us-east-1").cluster_conformity.is_opt_out_of_conformity is False

    def test_export(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test exporting the field map as JSON."""
        result = invoke(runner, storage_dir, "conformity", "export", "api", "--region", "us-east-1")

        assert result.exit_code == 0
        fields = json.loads(result.stdout)
        assert fields["cluster"] == "api"
        assert fields["updateTimestamp"] == "2025-01-10T12:30:45"
        assert fields["ruleA"] == "groupX,groupY"
        assert fields["ruleB"] == ""
        assert fields["excludedRules"] == "ruleC"

    def test_import(self, runner: CliRunner, storage_dir: Path, tmp_path: Path) -> None:
        """Test importing a field map stores a new record."""
        record = {
            "cluster": "web",
            "region": "eu-west-1",
            "updateTimestamp": "2025-03-01T00:00:00",
            "isConforming": "true",
            "isOptedOut": "false",
            "conformityRules": "ruleA",
            "ruleA": "",
        }
        record_file = tmp_path / "web.json"
        record_file.write_text(json.dumps(record))

        result = invoke(runner, storage_dir, "conformity", "import", str(record_file))

        assert result.exit_code == 0
        cluster = ClusterRecordStorage(storage_dir).load("web", "eu-west-1")
        assert cluster.cluster_conformity.is_conforming is True
        assert cluster.cluster_conformity.get_conformity("ruleA").passed is True

    def test_import_missing_timestamp(self, runner: CliRunner, storage_dir: Path, tmp_path: Path) -> None:
        """Test importing a record without updateTimestamp fails."""
        record_file = tmp_path / "bad.json"
        record_file.write_text(json.dumps({"cluster": "web", "region": "eu-west-1"}))

        result = invoke(runner, storage_dir, "conformity", "import", str(record_file))

        assert result.exit_code == 1
        assert "updateTimestamp" in result.stdout
        assert not ClusterRecordStorage(storage_dir).exists("web", "eu-west-1")

    def test_import_schema_drift(self, runner: CliRunner, storage_dir: Path, tmp_path: Path) -> None:
        """Test importing a record with a missing rule entry fails."""
        record_file = tmp_path / "drift.json"
        record_file.write_text(
            json.dumps(
                {
                    "cluster": "web",
                    "region": "eu-west-1",
                    "updateTimestamp": "2025-03-01T00:00:00",
                    "conformityRules": "ruleA",
                }
            )
        )

        result = invoke(runner, storage_dir, "conformity", "import", str(record_file))

        assert result.exit_code == 1
        assert "ruleA" in result.stdout

    def test_version(self, runner: CliRunner, storage_dir: Path) -> None:
        """Test the version command."""
        result = invoke(runner, storage_dir, "version")

        assert result.exit_code == 0
        assert "cloud-janitor version" in result.stdout
