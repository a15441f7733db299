from datetime import datetime, timezone
from pathlib import Path

import pytest

from stack_deployer.domain import (
    Environment,
    EnvironmentName,
    FailureContext,
    HetznerConfig,
    InstanceName,
    LxdConfig,
    StateTag,
    provider_config_from_dict,
    redacted,
)
from stack_deployer.errors import ErrorKind, ValidationError, WrongStateError
from stack_deployer.ssh import SSHCredentials

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _credentials() -> SSHCredentials:
    return SSHCredentials(
        private_key_path=Path("/keys/id_ed25519"),
        public_key_path=Path("/keys/id_ed25519.pub"),
        username="deployer",
    )


def _environment(tmp_path: Path, name: str = "demo") -> Environment:
    return Environment.create(
        name,
        LxdConfig(profile_name="stack-demo"),
        _credentials(),
        data_root=tmp_path / "data",
        build_root=tmp_path / "build",
        created_at=NOW,
    )


def _failure(step: str = "RunApply") -> FailureContext:
    return FailureContext(
        failed_step=step,
        error_kind=ErrorKind.COMMAND_EXECUTION,
        error_summary="tofu apply failed",
        occurred_at=NOW,
    )


class TestEnvironmentName:
    @pytest.mark.parametrize("value", ["dev", "staging2", "e2e-config", "a"])
    def test_accepts_valid_names(self, value):
        assert EnvironmentName(value) == value

    @pytest.mark.parametrize(
        "value, fragment",
        [
            ("", "empty"),
            ("Dev", "lowercase"),
            ("my_env", "lowercase"),
            ("1dev", "digit"),
            ("-dev", "dash"),
            ("dev-", "dash"),
            ("dev--test", "consecutive"),
        ],
    )
    def test_rejects_invalid_names(self, value, fragment):
        with pytest.raises(ValidationError) as excinfo:
            EnvironmentName(value)
        assert fragment in str(excinfo.value)
        assert excinfo.value.kind is ErrorKind.VALIDATION


class TestInstanceName:
    def test_derives_from_environment_name(self):
        assert InstanceName.for_environment(EnvironmentName("demo")) == "stack-vm-demo"

    def test_rejects_names_longer_than_63_characters(self):
        with pytest.raises(ValidationError):
            InstanceName("a" * 64)

    @pytest.mark.parametrize("value", [12, None, ["stack-vm"]])
    def test_rejects_non_strings(self, value):
        with pytest.raises(ValidationError):
            InstanceName(value)

    def test_environment_with_too_long_instance_name_is_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            _environment(tmp_path, name="e" * 60)


class TestSSHCredentials:
    def test_relative_key_paths_are_rejected(self):
        with pytest.raises(ValidationError, match="absolute"):
            SSHCredentials(
                private_key_path=Path("keys/id"),
                public_key_path=Path("/keys/id.pub"),
                username="deployer",
            )

    @pytest.mark.parametrize("username", ["", "Root", "1user", "a" * 33, 7, None])
    def test_invalid_usernames(self, username):
        with pytest.raises(ValidationError):
            SSHCredentials(Path("/k"), Path("/k.pub"), username)

    @pytest.mark.parametrize("port", [0, 65536, True])
    def test_invalid_ports(self, port):
        with pytest.raises(ValidationError):
            SSHCredentials(Path("/k"), Path("/k.pub"), "deployer", port=port)

    def test_dict_round_trip(self):
        credentials = _credentials()
        assert SSHCredentials.from_dict(credentials.to_dict()) == credentials

    def test_missing_field(self):
        with pytest.raises(ValidationError, match="username"):
            SSHCredentials.from_dict({"private_key_path": "/k", "public_key_path": "/k.pub"})

    def test_non_object_payload(self):
        with pytest.raises(ValidationError, match="object"):
            SSHCredentials.from_dict("deployer@host")

    def test_key_path_must_be_a_path(self):
        with pytest.raises(ValidationError, match="private_key_path"):
            SSHCredentials.from_dict({"private_key_path": None, "public_key_path": "/k.pub", "username": "u"})


class TestProviderConfig:
    def test_parses_lxd(self):
        config = provider_config_from_dict({"provider": "lxd", "profile_name": "stack-dev"})
        assert config == LxdConfig(profile_name="stack-dev")

    def test_parses_hetzner_with_default_image(self):
        config = provider_config_from_dict(
            {"provider": "hetzner", "api_token": "t0k", "server_type": "cx22", "location": "nbg1"}
        )
        assert isinstance(config, HetznerConfig)
        assert config.image == "ubuntu-24.04"

    @pytest.mark.parametrize(
        "payload",
        [
            {"provider": "lxd", "profile_name": 5},
            {"provider": "hetzner", "api_token": 42, "server_type": "cx22", "location": "nbg1"},
            {"provider": "hetzner", "api_token": "t", "server_type": ["cx22"], "location": "nbg1"},
        ],
    )
    def test_wrongly_typed_fields(self, payload):
        with pytest.raises(ValidationError):
            provider_config_from_dict(payload)

    def test_unknown_provider(self):
        with pytest.raises(ValidationError, match="Unknown provider"):
            provider_config_from_dict({"provider": "aws"})

    def test_missing_field_names_provider(self):
        with pytest.raises(ValidationError, match="server_type"):
            provider_config_from_dict({"provider": "hetzner", "api_token": "x", "location": "nbg1"})

    def test_token_is_hidden(self):
        config = HetznerConfig(api_token="secret-token", server_type="cx22", location="nbg1")
        assert "secret-token" not in repr(config)
        assert redacted(config)["api_token"] == "***"


class TestEnvironmentTransitions:
    def test_create_produces_created_without_ip(self, tmp_path):
        environment = _environment(tmp_path)
        assert environment.state is StateTag.CREATED
        assert environment.instance_ip is None
        assert environment.failure is None
        assert environment.data_dir == (tmp_path / "data").resolve() / "demo"
        assert environment.tofu_build_dir == (tmp_path / "build").resolve() / "demo" / "tofu" / "lxd"
        assert environment.traces_dir == environment.data_dir / "traces"

    def test_happy_path_sequence(self, tmp_path):
        environment = _environment(tmp_path)
        environment = environment.start_provisioning().provisioned()
        environment = environment.start_configuring().configured()
        environment = environment.start_releasing().released()
        environment = environment.running()
        assert environment.state is StateTag.RUNNING

    def test_configure_cannot_start_from_created(self, tmp_path):
        with pytest.raises(WrongStateError) as excinfo:
            _environment(tmp_path).start_configuring()
        assert excinfo.value.actual == "Created"
        assert excinfo.value.kind is ErrorKind.WRONG_STATE

    def test_failed_state_requires_failure_context(self, tmp_path):
        environment = _environment(tmp_path)
        with pytest.raises(ValidationError):
            Environment(context=environment.context, state=StateTag.PROVISION_FAILED)

    def test_success_state_rejects_failure_context(self, tmp_path):
        environment = _environment(tmp_path)
        with pytest.raises(ValidationError):
            Environment(context=environment.context, state=StateTag.PROVISIONED, failure=_failure())

    def test_retry_from_failed_state(self, tmp_path):
        failed = _environment(tmp_path).start_provisioning().provision_failed(_failure())
        assert failed.failure.failed_step == "RunApply"
        retried = failed.start_provisioning()
        assert retried.state is StateTag.PROVISIONING
        assert retried.failure is None

    @pytest.mark.parametrize("tag", list(StateTag))
    def test_destroying_is_reachable_from_every_state(self, tmp_path, tag):
        base = _environment(tmp_path)
        failure = _failure() if tag.is_failed else None
        environment = Environment(context=base.context, state=tag, failure=failure)
        assert environment.start_destroying().state is StateTag.DESTROYING

    def test_register_goes_from_created_to_provisioned(self, tmp_path):
        registered = _environment(tmp_path).registered("192.168.1.50")
        assert registered.state is StateTag.PROVISIONED
        assert str(registered.instance_ip) == "192.168.1.50"
        assert registered.start_configuring().state is StateTag.CONFIGURING

    def test_register_refuses_other_states(self, tmp_path):
        provisioned = _environment(tmp_path).start_provisioning().provisioned()
        with pytest.raises(WrongStateError):
            provisioned.registered("192.168.1.50")
        with pytest.raises(ValidationError):
            _environment(tmp_path).registered("nope")

    def test_provisioned_still_requires_provisioning(self, tmp_path):
        with pytest.raises(WrongStateError):
            _environment(tmp_path).provisioned()

    def test_with_instance_ip_validates_address(self, tmp_path):
        environment = _environment(tmp_path)
        assert str(environment.with_instance_ip("10.0.0.5").instance_ip) == "10.0.0.5"
        with pytest.raises(ValidationError):
            environment.with_instance_ip("not-an-ip")
