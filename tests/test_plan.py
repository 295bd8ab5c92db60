"""Tests for side-effect-free migration planning."""

import re
from datetime import datetime

from docker_copy.constants import (
    WARNING_CONTAINER_BEST_EFFORT,
    WARNING_EMPTY_SELECTION,
    WARNING_SINGLE_NETWORK,
)
from docker_copy.core.migration import build_plan
from docker_copy.core.migration.plan import (
    PLACEHOLDER_STAMP,
    local_archive_path,
    migrated_image,
    migration_stamp,
    target_archive_path,
)
from docker_copy.models.migration import ExecutionSite, MigrationOptions, ResourceSelection


def _plan(source, target, settings, options=None, **selection):
    return build_plan(
        source, target, ResourceSelection(**selection), options or MigrationOptions(), settings
    )


class TestNetworkSteps:
    """Network planning."""

    def test_default_networks_only_warn(self, local_host, settings):
        plan = _plan(local_host, local_host, settings, networks=["bridge", "host", "none"])

        assert plan.steps == ()
        default_warnings = [w for w in plan.warnings if "default network" in w]
        assert len(default_warnings) == 3
        assert "Network bridge is a Docker default network and will not be created." in plan.warnings

    def test_custom_network_runs_on_target(self, local_host, remote_host, settings):
        plan = _plan(local_host, remote_host, settings, networks=["appnet"])

        assert len(plan.steps) == 1
        step = plan.steps[0]
        assert step.site is ExecutionSite.TARGET
        assert step.command == "docker network create appnet"
        assert WARNING_EMPTY_SELECTION not in plan.warnings


class TestEmptySelection:
    """Nothing to do."""

    def test_empty_selection_warns_once(self, local_host, settings):
        plan = _plan(local_host, local_host, settings)

        assert plan.steps == ()
        assert plan.warnings == (WARNING_EMPTY_SELECTION,)

    def test_all_categories_excluded(self, local_host, settings):
        options = MigrationOptions(
            include_containers=False, include_volumes=False, include_networks=False
        )
        plan = _plan(
            local_host, local_host, settings, options,
            containers=["web"], volumes=["data"], networks=["appnet"],
        )

        assert plan.steps == ()
        assert plan.warnings == (WARNING_EMPTY_SELECTION,)


class TestOrdering:
    """Phase order, identifiers and sites."""

    def test_networks_then_volumes_then_containers(self, local_host, remote_host, settings):
        plan = _plan(
            local_host, remote_host, settings,
            containers=["web"], volumes=["data"], networks=["appnet"],
        )

        kinds = [step.id.split("-", 2)[2] for step in plan.steps]
        assert kinds == [
            "network", "volume", "volume-sync",
            "commit", "save", "transfer", "load", "recreate",
        ]

    def test_step_ids_unique_and_sequential(self, local_host, remote_host, settings):
        plan = _plan(
            local_host, remote_host, settings,
            containers=["web", "db"], volumes=["data", "logs"], networks=["appnet"],
        )

        ids = [step.id for step in plan.steps]
        assert len(ids) == len(set(ids))
        assert [int(i.split("-")[1]) for i in ids] == list(range(1, len(ids) + 1))

    def test_plan_is_deterministic(self, local_host, remote_host, settings):
        selection = {"containers": ["web"], "volumes": ["data"], "networks": ["appnet"]}
        first = _plan(local_host, remote_host, settings, **selection)
        second = _plan(local_host, remote_host, settings, **selection)
        assert first == second

    def test_container_steps_sites(self, local_host, remote_host, settings):
        plan = _plan(local_host, remote_host, settings, containers=["web"])

        assert [step.site for step in plan.steps] == [
            ExecutionSite.SOURCE,
            ExecutionSite.SOURCE,
            ExecutionSite.LOCAL,
            ExecutionSite.TARGET,
            ExecutionSite.TARGET,
        ]
        assert WARNING_CONTAINER_BEST_EFFORT in plan.warnings
        assert WARNING_SINGLE_NETWORK in plan.warnings

    def test_volume_steps(self, local_host, remote_host, settings):
        plan = _plan(local_host, remote_host, settings, volumes=["data"])

        create, sync = plan.steps
        assert create.site is ExecutionSite.TARGET
        assert create.command == "docker volume create data"
        assert sync.site is ExecutionSite.LOCAL
        assert "tar -C /from -cf - ." in sync.command
        assert " | ssh " in sync.command
        assert "deploy@target.example.com" in sync.command


class TestTransferPreview:
    """Image archive transfer rendering."""

    def test_remote_target_uses_rsync(self, local_host, remote_host, settings):
        plan = _plan(local_host, remote_host, settings, containers=["web"])

        transfer = plan.steps[2].command
        assert transfer.startswith("rsync -a -e ")
        assert "-p 2222" in transfer
        archive = target_archive_path(settings, remote_host, "web", PLACEHOLDER_STAMP)
        assert f"deploy@target.example.com:{archive}" in transfer

    def test_local_target_uses_copy(self, local_host, settings):
        plan = _plan(local_host, local_host, settings, containers=["web"])

        transfer = plan.steps[2].command
        assert transfer.startswith("cp ")
        assert "target-web-" in transfer

    def test_commit_uses_migrated_image(self, local_host, settings):
        plan = _plan(local_host, local_host, settings, containers=["My App"])

        image = migrated_image(settings, "My App", PLACEHOLDER_STAMP)
        assert image.startswith("docker-copy/my-app:migrated-")
        assert image in plan.steps[0].command


class TestRemoteSourceWarnings:
    """Remote sources are planned but flagged."""

    def test_remote_source_volume_warning(self, remote_host, local_host, settings):
        plan = _plan(remote_host, local_host, settings, volumes=["data"])

        assert len(plan.steps) == 2
        assert any("local source host" in w for w in plan.warnings)

    def test_remote_source_container_warning(self, remote_host, local_host, settings):
        plan = _plan(remote_host, local_host, settings, containers=["web"])

        assert len(plan.steps) == 5
        assert any("Container migration requires a local source host" in w for w in plan.warnings)

    def test_no_remote_warning_for_excluded_category(self, remote_host, local_host, settings):
        options = MigrationOptions(include_volumes=False)
        plan = _plan(remote_host, local_host, settings, options, volumes=["data"])

        assert not any("local source host" in w for w in plan.warnings)


class TestMigrationStamp:
    """Per-run naming."""

    def test_same_second_runs_differ(self, settings):
        first = migration_stamp(datetime(2026, 1, 1, 12, 0, 0, 1000))
        second = migration_stamp(datetime(2026, 1, 1, 12, 0, 0, 900000))

        assert first != second
        assert local_archive_path(settings, "app", first) != local_archive_path(
            settings, "app", second
        )

    def test_stamp_shape(self):
        stamp = migration_stamp(datetime(2026, 1, 1, 12, 0, 0), "abcd1234")
        assert stamp == "20260101120000-abcd1234"

    def test_stamp_valid_in_image_tag(self, settings):
        image = migrated_image(settings, "web", migration_stamp())
        tag = image.rsplit(":", 1)[1]
        assert re.fullmatch(r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}", tag)
