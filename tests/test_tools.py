import json
import subprocess
from pathlib import Path

import pytest

from fakes import write_key_pair
from stack_deployer.domain import Environment, HetznerConfig, LxdConfig
from stack_deployer.errors import CommandExecutionError, ConfigurationError, ErrorKind, OperationTimeoutError
from stack_deployer.paths import TEMPLATES_DIR
from stack_deployer.ssh import SSHCredentials
from stack_deployer.steps.provision import ansible_template_context, tofu_template_context
from stack_deployer.tools import (
    AnsibleClient,
    CommandExecutor,
    CommandResult,
    OpenTofuClient,
    TemplateRenderer,
    parse_instance_info,
)
from stack_deployer.tools import executor as executor_module

INSTANCE_INFO = {
    "image": "ubuntu:24.04",
    "ip_address": "10.140.190.68",
    "name": "stack-vm-demo",
    "status": "Running",
}


class RecordingExecutor:
    def __init__(self, stdout: str = "") -> None:
        self.stdout = stdout
        self.calls = []

    def run(self, program, args, cwd=None, timeout=None):
        self.calls.append((program, list(args), cwd))
        return CommandResult([program, *args], 0, self.stdout, "")


class TestCommandExecutor:
    def _patch_run(self, monkeypatch, handler):
        monkeypatch.setattr(executor_module.subprocess, "run", handler)

    def test_returns_captured_output(self, monkeypatch, tmp_path):
        seen = {}

        def fake_run(command, **kwargs):
            seen.update(kwargs, command=command)
            return subprocess.CompletedProcess(command, 0, stdout="done\n", stderr="")

        self._patch_run(monkeypatch, fake_run)
        result = CommandExecutor().run("tofu", ["init"], cwd=tmp_path)
        assert result.stdout == "done\n"
        assert seen["command"] == ["tofu", "init"]
        assert seen["cwd"] == str(tmp_path)
        assert seen["capture_output"] is True

    def test_non_zero_exit_carries_stderr(self, monkeypatch):
        self._patch_run(
            monkeypatch,
            lambda command, **kwargs: subprocess.CompletedProcess(command, 3, stdout="", stderr="Error: bad"),
        )
        with pytest.raises(CommandExecutionError) as excinfo:
            CommandExecutor().run("tofu", ["apply"])
        assert excinfo.value.exit_code == 3
        assert "Error: bad" in str(excinfo.value)

    def test_missing_binary(self, monkeypatch):
        def fake_run(command, **kwargs):
            raise FileNotFoundError(2, "No such file or directory")

        self._patch_run(monkeypatch, fake_run)
        with pytest.raises(CommandExecutionError) as excinfo:
            CommandExecutor().run("tofu", ["init"])
        assert excinfo.value.exit_code is None
        assert "not found" in str(excinfo.value)

    def test_timeout(self, monkeypatch):
        def fake_run(command, **kwargs):
            raise subprocess.TimeoutExpired(command, kwargs["timeout"])

        self._patch_run(monkeypatch, fake_run)
        with pytest.raises(OperationTimeoutError) as excinfo:
            CommandExecutor().run("ansible-playbook", ["site.yml"], timeout=5)
        assert excinfo.value.kind is ErrorKind.TIMEOUT


class TestOpenTofuClient:
    def test_commands_and_var_file(self, tmp_path):
        (tmp_path / "variables.tfvars").write_text('instance_name = "x"\n', encoding="utf-8")
        executor = RecordingExecutor()
        client = OpenTofuClient(tmp_path, executor)
        client.init()
        client.plan()
        client.apply()
        client.destroy()
        assert [args for _, args, _ in executor.calls] == [
            ["init", "-input=false"],
            ["plan", "-input=false", "-var-file=variables.tfvars"],
            ["apply", "-input=false", "-var-file=variables.tfvars", "-auto-approve"],
            ["destroy", "-input=false", "-var-file=variables.tfvars", "-auto-approve"],
        ]
        assert all(cwd == tmp_path for _, _, cwd in executor.calls)

    def test_instance_info_from_outputs(self, tmp_path):
        stdout = json.dumps({"instance_info": {"sensitive": False, "type": "object", "value": INSTANCE_INFO}})
        info = OpenTofuClient(tmp_path, RecordingExecutor(stdout)).instance_info()
        assert str(info.ip_address) == "10.140.190.68"
        assert info.name == "stack-vm-demo"

    def test_non_json_output(self, tmp_path):
        with pytest.raises(CommandExecutionError, match="Unusable OpenTofu output"):
            OpenTofuClient(tmp_path, RecordingExecutor("not json")).read_outputs()


class TestParseInstanceInfo:
    def test_missing_section(self):
        with pytest.raises(CommandExecutionError, match="instance_info"):
            parse_instance_info({})

    def test_missing_field(self):
        info = dict(INSTANCE_INFO)
        del info["status"]
        with pytest.raises(CommandExecutionError, match="status"):
            parse_instance_info({"instance_info": info})

    def test_invalid_ip(self):
        with pytest.raises(CommandExecutionError, match="valid IP"):
            parse_instance_info({"instance_info": dict(INSTANCE_INFO, ip_address="")})


class TestAnsibleClient:
    def test_playbook_arguments(self, tmp_path):
        executor = RecordingExecutor()
        AnsibleClient(tmp_path, executor).run_playbook("create-app-storage", extra_vars={"remote_app_dir": "/opt/stack"})
        program, args, cwd = executor.calls[0]
        assert program == "ansible-playbook"
        assert args == [
            "-v",
            "-i",
            "inventory.yml",
            "--extra-vars",
            '{"remote_app_dir": "/opt/stack"}',
            "create-app-storage.yml",
        ]
        assert cwd == tmp_path


class TestTemplateRenderer:
    def _templates(self, root: Path) -> Path:
        template_set = root / "templates" / "demo"
        (template_set / "nested").mkdir(parents=True)
        (template_set / "greeting.txt.j2").write_text("hello {{ name }}\n", encoding="utf-8")
        (template_set / "nested" / "static.cfg").write_text("{{ untouched }}\n", encoding="utf-8")
        return root / "templates"

    def test_renders_and_copies(self, tmp_path):
        renderer = TemplateRenderer(self._templates(tmp_path))
        out = tmp_path / "out"
        written = renderer.render("demo", {"name": "world"}, out)
        assert sorted(p.relative_to(out).as_posix() for p in written) == ["greeting.txt", "nested/static.cfg"]
        assert (out / "greeting.txt").read_text(encoding="utf-8") == "hello world\n"
        assert (out / "nested" / "static.cfg").read_text(encoding="utf-8") == "{{ untouched }}\n"

    def test_undefined_variable_is_an_error(self, tmp_path):
        renderer = TemplateRenderer(self._templates(tmp_path))
        with pytest.raises(ConfigurationError, match="greeting.txt.j2"):
            renderer.render("demo", {}, tmp_path / "out")

    def test_missing_template_set(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            TemplateRenderer(tmp_path).render("tofu/aws", {}, tmp_path / "out")


class TestBundledTemplates:
    def _environment(self, tmp_path, provider):
        private_key, public_key = write_key_pair(tmp_path)
        return Environment.create(
            "demo",
            provider,
            SSHCredentials(private_key, public_key, "deployer", port=2222),
            data_root=tmp_path / "data",
            build_root=tmp_path / "build",
        )

    def test_lxd_set(self, tmp_path):
        environment = self._environment(tmp_path, LxdConfig(profile_name="stack-demo"))
        renderer = TemplateRenderer(TEMPLATES_DIR)
        renderer.render("tofu/lxd", tofu_template_context(environment), environment.tofu_build_dir)

        tfvars = (environment.tofu_build_dir / "variables.tfvars").read_text(encoding="utf-8")
        assert 'instance_name = "stack-vm-demo"' in tfvars
        assert 'profile_name  = "stack-demo"' in tfvars
        cloud_init = (environment.tofu_build_dir / "cloud-init.yml").read_text(encoding="utf-8")
        assert "ssh-ed25519" in cloud_init
        assert "Port 2222" in cloud_init
        assert (environment.tofu_build_dir / "main.tf").is_file()

    def test_hetzner_set(self, tmp_path):
        provider = HetznerConfig(api_token="secret", server_type="cx22", location="nbg1")
        environment = self._environment(tmp_path, provider)
        TemplateRenderer(TEMPLATES_DIR).render(
            "tofu/hetzner", tofu_template_context(environment), environment.tofu_build_dir
        )
        tfvars = (environment.tofu_build_dir / "variables.tfvars").read_text(encoding="utf-8")
        assert 'server_type   = "cx22"' in tfvars

    def test_ansible_inventory(self, tmp_path):
        environment = self._environment(tmp_path, LxdConfig(profile_name="stack-demo"))
        TemplateRenderer(TEMPLATES_DIR).render(
            "ansible", ansible_template_context(environment, "10.0.0.7"), environment.ansible_build_dir
        )
        inventory = (environment.ansible_build_dir / "inventory.yml").read_text(encoding="utf-8")
        assert "ansible_host: 10.0.0.7" in inventory
        assert "ansible_port: 2222" in inventory
        assert (environment.ansible_build_dir / "install-docker.yml").is_file()
