import json

import pytest

from fakes import FakeToolFactory, environment_config
from stack_deployer.domain import StateTag
from stack_deployer.errors import CommandExecutionError, ErrorKind
from stack_deployer.handlers import (
    CreateCommandError,
    CreateCommandHandler,
    DestroyCommandHandler,
    ListCommandHandler,
    ProvisionCommandError,
    ProvisionCommandHandler,
    PurgeCommandError,
    PurgeCommandHandler,
    ShowCommandError,
    ShowCommandHandler,
)

HETZNER = {"provider": "hetzner", "server_type": "cx22", "location": "nbg1"}


def _retype_profile(workspace, name):
    path = workspace.store.state_file(name)
    document = json.loads(path.read_text(encoding="utf-8"))
    document["Created"]["context"]["provider_config"]["profile_name"] = 5
    path.write_text(json.dumps(document), encoding="utf-8")


class TestCreateCommand:
    def test_existing_name_is_refused(self, workspace):
        workspace.create()
        before = workspace.state_bytes()
        with pytest.raises(CreateCommandError) as excinfo:
            workspace.create()
        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert "already exists" in str(excinfo.value)
        assert workspace.state_bytes() == before

    def test_invalid_name(self, workspace):
        config = environment_config(workspace.root)
        config["environment"]["name"] = "Bad_Name"
        handler = CreateCommandHandler(workspace.store, workspace.build_root, workspace.clock)
        with pytest.raises(CreateCommandError) as excinfo:
            handler.execute(config)
        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert workspace.store.list_names() == []

    def test_missing_section(self, workspace):
        config = environment_config(workspace.root)
        del config["provider"]
        handler = CreateCommandHandler(workspace.store, workspace.build_root, workspace.clock)
        with pytest.raises(CreateCommandError, match="provider"):
            handler.execute(config)

    def test_missing_key_file(self, workspace):
        config = environment_config(workspace.root)
        config["ssh_credentials"]["public_key_path"] = str(workspace.root / "keys" / "absent.pub")
        handler = CreateCommandHandler(workspace.store, workspace.build_root, workspace.clock)
        with pytest.raises(CreateCommandError, match="not found"):
            handler.execute(config)

    def test_hetzner_token_from_settings(self, workspace):
        config = environment_config(workspace.root, provider=dict(HETZNER))
        handler = CreateCommandHandler(
            workspace.store, workspace.build_root, workspace.clock, hetzner_api_token="from-env"
        )
        environment = handler.execute(config)
        assert environment.provider_config.api_token == "from-env"

    def test_hetzner_without_token_is_invalid(self, workspace):
        config = environment_config(workspace.root, provider=dict(HETZNER))
        handler = CreateCommandHandler(workspace.store, workspace.build_root, workspace.clock)
        with pytest.raises(CreateCommandError, match="api_token"):
            handler.execute(config)


class TestPurgeCommand:
    def test_refuses_environment_that_was_not_destroyed(self, workspace):
        workspace.create()
        with pytest.raises(PurgeCommandError) as excinfo:
            PurgeCommandHandler(workspace.store, workspace.build_root).execute("demo")
        assert excinfo.value.kind is ErrorKind.WRONG_STATE
        assert workspace.store.exists("demo")

    def test_purges_destroyed_environment(self, workspace):
        workspace.create()
        DestroyCommandHandler(workspace.store, FakeToolFactory(), workspace.clock).execute("demo")
        PurgeCommandHandler(workspace.store, workspace.build_root).execute("demo")
        assert not workspace.store.exists("demo")
        assert not (workspace.root / "data" / "demo").exists()

    def test_force_removes_everything(self, workspace):
        environment = workspace.create()
        ProvisionCommandHandler(workspace.store, FakeToolFactory(), workspace.clock).execute("demo")
        assert environment.build_dir.exists()

        PurgeCommandHandler(workspace.store, workspace.build_root).execute("demo", force=True)
        assert not environment.build_dir.exists()
        assert not environment.data_dir.exists()
        assert workspace.store.list_names() == []

    def test_force_handles_wrongly_typed_state(self, workspace):
        workspace.create()
        _retype_profile(workspace, "demo")
        handler = PurgeCommandHandler(workspace.store, workspace.build_root)
        with pytest.raises(PurgeCommandError, match="Corrupt state"):
            handler.execute("demo")
        handler.execute("demo", force=True)
        assert not workspace.store.exists("demo")
        assert not (workspace.build_root / "demo").exists()

    def test_force_handles_corrupt_state(self, workspace):
        workspace.create()
        workspace.store.state_file("demo").write_text("{", encoding="utf-8")
        handler = PurgeCommandHandler(workspace.store, workspace.build_root)
        with pytest.raises(PurgeCommandError):
            handler.execute("demo")
        handler.execute("demo", force=True)
        assert not workspace.store.exists("demo")


class TestShowAndList:
    def test_show_hides_api_token(self, workspace):
        workspace.create(provider=dict(HETZNER, api_token="very-secret"))
        info = ShowCommandHandler(workspace.store).execute("demo")
        assert info.provider == "hetzner"
        assert info.provider_config["api_token"] == "***"
        assert "very-secret" not in str(info.to_dict())

    def test_show_failure_details(self, workspace):
        workspace.create()
        tools = FakeToolFactory(failures={"tofu.init": CommandExecutionError(["tofu", "init"], 1, "no plugin")})
        with pytest.raises(ProvisionCommandError):
            ProvisionCommandHandler(workspace.store, tools, workspace.clock).execute("demo")
        info = ShowCommandHandler(workspace.store).execute("demo")
        assert info.state == StateTag.PROVISION_FAILED.value
        assert info.failure["failed_step"] == "InitInfrastructure"

    def test_show_unknown(self, workspace):
        with pytest.raises(ShowCommandError):
            ShowCommandHandler(workspace.store).execute("ghost")

    def test_list_reports_corrupt_entries(self, workspace):
        workspace.create("alpha")
        workspace.create("beta")
        workspace.store.state_file("beta").write_text("[]", encoding="utf-8")

        summaries = ListCommandHandler(workspace.store).execute()
        assert [s.name for s in summaries] == ["alpha", "beta"]
        assert summaries[0].state == "Created"
        assert summaries[0].provider == "lxd"
        assert summaries[1].state is None
        assert summaries[1].error

    def test_list_reports_wrongly_typed_entries(self, workspace):
        workspace.create("alpha")
        workspace.create("beta")
        _retype_profile(workspace, "alpha")

        summaries = ListCommandHandler(workspace.store).execute()
        assert [s.name for s in summaries] == ["alpha", "beta"]
        assert summaries[0].state is None
        assert "profile" in summaries[0].error
        assert summaries[1].state == "Created"
