"""Dependency injection container for Relay MCP.

Wires configuration, the execution context and the orchestrator together
so tools and resources receive them explicitly.
"""

from dataclasses import dataclass

from relay_mcp.config import Config
from relay_mcp.services.context import ExecutionContext
from relay_mcp.services.orchestrator import ExecutionOrchestrator


@dataclass
class Dependencies:
    """Container for Relay MCP dependencies.

    Holds configuration, the execution context whose sessions outlive a
    single tool call, and the orchestrator bound to both.

    Example:
        deps = Dependencies.create()
        await deps.orchestrator.connect(task)
        await deps.cleanup()
    """

    config: Config
    context: ExecutionContext
    orchestrator: ExecutionOrchestrator

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies with configuration from the environment.

        Returns:
            Initialized Dependencies instance
        """
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(cls, config: Config) -> "Dependencies":
        """Create dependencies with custom configuration.

        Args:
            config: Custom Config instance

        Returns:
            Dependencies with context and orchestrator built from config
        """
        context = ExecutionContext(
            options=config.connect_options(),
            gateway=config.gateway,
        )
        orchestrator = ExecutionOrchestrator(
            context=context,
            inventory=config.inventory,
            settings=config.settings,
        )
        return cls(config=config, context=context, orchestrator=orchestrator)

    async def cleanup(self) -> None:
        """Clean up resources (close sessions and gateway tunnels)."""
        await self.context.close()
