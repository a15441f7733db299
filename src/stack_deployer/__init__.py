"""Environment lifecycle orchestration over OpenTofu and Ansible."""

__version__ = "0.1.0"
