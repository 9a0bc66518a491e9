"""
Configuration — run settings (devbox.yml) and provisioning plans.
"""

from devbox.core.config.loader import CONFIG_FILE, ProvisionConfig, find_config_file, load_config
from devbox.core.config.plan_loader import builtin_variables, load_plan, render_template

__all__ = [
    "CONFIG_FILE",
    "ProvisionConfig",
    "builtin_variables",
    "find_config_file",
    "load_config",
    "load_plan",
    "render_template",
]
