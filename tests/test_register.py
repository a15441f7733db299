import json

import pytest

from fakes import FakeToolFactory
from stack_deployer.domain import StateTag
from stack_deployer.errors import ErrorKind, OperationTimeoutError
from stack_deployer.handlers import (
    ConfigureCommandHandler,
    DestroyCommandHandler,
    ProvisionCommandHandler,
    RegisterCommandError,
    RegisterCommandHandler,
)
from stack_deployer.output import RecordingOutput


def _register(workspace, tools, ip="192.168.1.50", output=None):
    return RegisterCommandHandler(workspace.store, tools, workspace.clock).execute("demo", ip, output)


class TestRegisterCommand:
    def test_registers_existing_instance(self, workspace):
        workspace.create()
        tools = FakeToolFactory()

        environment = _register(workspace, tools)

        assert environment.state is StateTag.PROVISIONED
        assert str(environment.instance_ip) == "192.168.1.50"
        assert tools.operations() == ["prober.wait", "render.ansible"]
        assert tools.calls[0] == ("prober.wait", "192.168.1.50")
        assert tools.render_contexts["ansible"]["instance_ip"] == "192.168.1.50"
        assert not environment.tofu_build_dir.exists()

        document = json.loads(workspace.state_bytes())
        assert list(document) == ["Provisioned"]
        assert document["Provisioned"]["context"]["instance_ip"] == "192.168.1.50"

    def test_registered_environment_can_be_configured(self, workspace):
        workspace.create()
        _register(workspace, FakeToolFactory())
        environment = ConfigureCommandHandler(workspace.store, FakeToolFactory(), workspace.clock).execute("demo")
        assert environment.state is StateTag.CONFIGURED

    def test_destroy_skips_teardown_for_registered_environment(self, workspace):
        workspace.create()
        _register(workspace, FakeToolFactory())
        tools = FakeToolFactory()
        output = RecordingOutput()

        environment = DestroyCommandHandler(workspace.store, tools, workspace.clock).execute("demo", output)

        assert environment.state is StateTag.DESTROYED
        assert tools.calls == []
        assert any("skipping teardown" in message for message in output.of_level("info"))

    def test_unreachable_instance_leaves_environment_created(self, workspace):
        workspace.create()
        before = workspace.state_bytes()
        tools = FakeToolFactory(
            failures={"prober.wait": OperationTimeoutError("SSH connectivity", attempts=30, elapsed=60)}
        )

        with pytest.raises(RegisterCommandError) as excinfo:
            _register(workspace, tools)

        error = excinfo.value
        assert error.failed_step == "WaitForConnectivity"
        assert error.kind is ErrorKind.TIMEOUT
        assert error.environment is None
        assert tools.count("render.ansible") == 0
        assert workspace.state_bytes() == before
        assert workspace.store.load("demo").instance_ip is None

    def test_invalid_ip(self, workspace):
        workspace.create()
        tools = FakeToolFactory()
        with pytest.raises(RegisterCommandError) as excinfo:
            _register(workspace, tools, ip="not-an-ip")
        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert excinfo.value.failed_step is None
        assert tools.calls == []

    @pytest.mark.parametrize("prior", ["provision", "register"])
    def test_only_created_environments_can_register(self, workspace, prior):
        workspace.create()
        if prior == "provision":
            ProvisionCommandHandler(workspace.store, FakeToolFactory(), workspace.clock).execute("demo")
        else:
            _register(workspace, FakeToolFactory())
        before = workspace.state_bytes()

        with pytest.raises(RegisterCommandError) as excinfo:
            _register(workspace, FakeToolFactory(), ip="192.168.1.51")

        assert excinfo.value.kind is ErrorKind.WRONG_STATE
        assert workspace.state_bytes() == before
