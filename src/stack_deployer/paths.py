"""Default on-disk locations.

Relative to the working directory unless configured otherwise:
- data/<env>/environment.json   # persisted environment state
- data/<env>/traces/            # failure trace files
- build/<env>/tofu/<provider>/  # OpenTofu working directory
- build/<env>/ansible/          # rendered inventory and playbooks
- build/<env>/docker-compose/   # rendered application stack
"""

from pathlib import Path

DATA_DIR = Path("data")
BUILD_DIR = Path("build")
CONFIG_DIR = Path("config")

# Templates shipped inside the package
TEMPLATES_DIR = Path(__file__).resolve().parent / "resources" / "templates"
