"""Development MCP servers for the deep search agent."""
