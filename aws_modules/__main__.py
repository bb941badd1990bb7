"""
Pulumi program entry point for the AWS modules.

Deploys the modules enabled in stack config:
1. Configuration
2. Module composition (see ``aws_modules.stack``)
3. Exports as ``<key>_<output>``
"""

import pulumi

from aws_modules.configs.environment import get_config
from aws_modules.stack import build_stack, stack_exports


def main() -> None:
    """Deploy the modules enabled in the stack configuration."""
    # Load configuration
    config = get_config()
    if not config.modules:
        pulumi.log.warn("No modules enabled; set modules.<key> in the stack config")
        return

    components = build_stack(config)

    # --- Exports ---
    for name, value in stack_exports(components).items():
        pulumi.export(name, value)

    pulumi.log.info(f"Deployed modules: {', '.join(components)}")


# Execute
try:
    main()
except Exception as exc:
    pulumi.log.error(f"Deployment failed: {exc}")
    raise
