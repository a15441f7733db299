"""Errors returned by command handlers to the presentation layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..errors import DeployerError

if TYPE_CHECKING:
    from ..domain import Environment


class CommandError(DeployerError):
    """A command did not complete.

    `failed_step` names the step that failed, or is None when the command
    stopped before running any step (wrong state, unknown environment, ...).
    `environment` is the persisted failed environment when one was written.
    """

    command: str = ""

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[DeployerError] = None,
        failed_step: Optional[str] = None,
        environment: Optional["Environment"] = None,
    ) -> None:
        self.cause = cause
        self.failed_step = failed_step
        self.environment = environment
        if cause is not None:
            self.kind = cause.kind
        super().__init__(message)

    def help(self) -> str:
        if self.cause is None:
            return self.help_text
        if self.failed_step is None:
            return self.cause.help()
        return f"{self.help_text}\n\n{self.cause.help()}"

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "kind": self.kind.value,
            "failed_step": self.failed_step,
            "help": self.help(),
        }


class CreateCommandError(CommandError):
    command = "create"
    help_text = (
        "Environment Creation Failed - Troubleshooting:\n\n"
        "1. Validate the environment file: it must be JSON with 'environment', "
        "'ssh_credentials' and 'provider' sections\n"
        "2. Use absolute paths for the SSH key pair and make sure both files exist\n"
        "3. Pick another name if the environment already exists, or purge the old one"
    )


class ProvisionCommandError(CommandError):
    command = "provision"
    help_text = (
        "Provisioning Failed - Troubleshooting:\n\n"
        "1. Check the failed step and the trace file path shown above\n"
        "2. Verify the provider is reachable (lxc list, or the Hetzner console)\n"
        "3. Re-run `stack-deployer provision <env-name>` to retry from the first step\n"
        "4. If the infrastructure is in a bad state: stack-deployer destroy <env-name>"
    )


class RegisterCommandError(CommandError):
    command = "register"
    help_text = (
        "Registration Failed - Troubleshooting:\n\n"
        "1. Check that the IP address belongs to the instance you want to adopt\n"
        "2. Verify SSH access: ssh -i <private-key> -p <port> <username>@<ip>\n"
        "3. The environment is still Created; re-run `stack-deployer register <env-name> --ip <ip>`"
    )


class ConfigureCommandError(CommandError):
    command = "configure"
    help_text = (
        "Configuration Failed - Troubleshooting:\n\n"
        "1. Check the failed playbook output in the trace file\n"
        "2. Verify SSH access to the instance with the configured key\n"
        "3. Re-run `stack-deployer configure <env-name>` once the problem is fixed"
    )


class ReleaseCommandError(CommandError):
    command = "release"
    help_text = (
        "Release Failed - Troubleshooting:\n\n"
        "1. Check the rendered docker compose files under build/<env-name>/docker-compose\n"
        "2. Verify there is free disk space on the instance\n"
        "3. Re-run `stack-deployer release <env-name>`"
    )


class RunCommandError(CommandError):
    command = "run"
    help_text = (
        "Run Failed - Troubleshooting:\n\n"
        "1. Log in to the instance and run `docker compose ps` in the application directory\n"
        "2. Inspect container logs with `docker compose logs`\n"
        "3. Re-run `stack-deployer run <env-name>`"
    )


class DestroyCommandError(CommandError):
    """Destroy failure; reports both the teardown and the cleanup outcome."""

    command = "destroy"
    help_text = (
        "Destroy Failed - Troubleshooting:\n\n"
        "1. If teardown failed, the OpenTofu working directory was kept under build/<env-name>/tofu\n"
        "2. Check the provider for leftover resources and remove them manually if needed\n"
        "3. Destroy is safe to re-run: stack-deployer destroy <env-name>"
    )

    def __init__(
        self,
        message: str,
        *,
        teardown_error: Optional[DeployerError] = None,
        cleanup_error: Optional[DeployerError] = None,
        **kwargs,
    ) -> None:
        self.teardown_error = teardown_error
        self.cleanup_error = cleanup_error
        super().__init__(message, **kwargs)

    def help(self) -> str:
        parts = [self.help_text]
        for error in (self.teardown_error, self.cleanup_error):
            if error is not None:
                parts.append(error.help())
        if self.teardown_error is None and self.cleanup_error is None and self.cause is not None:
            return self.cause.help()
        return "\n\n".join(parts)


class PurgeCommandError(CommandError):
    command = "purge"
    help_text = (
        "Purge Failed - Troubleshooting:\n\n"
        "1. Destroy the environment first: stack-deployer destroy <env-name>\n"
        "2. Use --force to purge local data of an environment that was not destroyed\n"
        "3. Check permissions on the data and build directories"
    )


class ShowCommandError(CommandError):
    command = "show"
