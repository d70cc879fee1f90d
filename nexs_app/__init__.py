"""NExS MCP App - renders published NExS spreadsheets inside MCP hosts."""
