"""
Session values and the async analysis functions behind the MCP tools.
"""
