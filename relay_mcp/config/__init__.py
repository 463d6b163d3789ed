"""Configuration module for Relay MCP.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- Inventory: Roles, tasks and gateway routing from YAML
- SSHConfigParser: Parses ~/.ssh/config files
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
"""

from relay_mcp.config.host_keys import HostKeyVerifier
from relay_mcp.config.inventory import Inventory
from relay_mcp.config.main import Config
from relay_mcp.config.parser import SSHConfigParser
from relay_mcp.config.settings import Settings

__all__ = ["Config", "HostKeyVerifier", "Inventory", "SSHConfigParser", "Settings"]
