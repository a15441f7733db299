"""Provision command handler."""

from __future__ import annotations

from typing import List

from ..domain import Environment, StateTag
from ..steps import Step, provision_steps
from .base import LifecycleCommandHandler
from .errors import ProvisionCommandError


class ProvisionCommandHandler(LifecycleCommandHandler):
    """Creates the instance and waits until it can be configured.

    Re-running against a ProvisionFailed environment starts again from
    the first step; templates are re-rendered over the previous output and
    the tofu state in the working directory is reused.
    """

    command = "provision"
    error_class = ProvisionCommandError
    start_states = frozenset({StateTag.CREATED, StateTag.PROVISION_FAILED})
    in_progress_state = StateTag.PROVISIONING
    success_state = StateTag.PROVISIONED
    failed_state = StateTag.PROVISION_FAILED

    def build_steps(self, environment: Environment) -> List[Step]:
        return provision_steps()
