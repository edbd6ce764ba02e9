"""
Postman MCP CLI — Command-line interface for the Postman MCP server

Commands:
    postman-mcp server      Start the MCP server (stdio, or HTTP+SSE with --http)
    postman-mcp tools       List the tools a tier exposes
    postman-mcp init        Create ~/.postman-mcp/config.env
    postman-mcp mcp-config  Print MCP client JSON config
    postman-mcp health      Check a running HTTP server
"""

import asyncio
import json
import os
import shutil
import sys

import click
import httpx

from postman_mcp import __version__
from postman_mcp.config import (
    Config,
    ConfigError,
    InvalidRegionError,
    ServerSettings,
    SUPPORTED_REGIONS,
    DEFAULT_PORT,
    load_config_env,
)
from postman_mcp.server.logger import get_logger

log = get_logger("cli")


@click.group()
@click.version_option(version=__version__, prog_name="postman-mcp")
def main():
    """Postman MCP Server — Postman API tools for MCP agents."""
    load_config_env(Config.HOME_DIR)


@main.command()
@click.option("--http", "http_mode", is_flag=True, help="Serve HTTP+SSE instead of stdio")
@click.option("--full", is_flag=True, help="Expose the full tool set instead of the minimal one")
@click.option("--region", envvar="POSTMAN_API_REGION", help="Postman API region (us, eu)")
@click.option("--host", envvar="HOST", help="Host to bind to (HTTP mode, default 0.0.0.0)")
@click.option("--port", envvar="PORT", help=f"Port to bind to (HTTP mode, default {DEFAULT_PORT})")
@click.option("--sse-path", envvar="MCP_SSE_PATH", help="SSE connection path (default /sse)")
@click.option("--messages-path", envvar="MCP_MESSAGES_PATH", help="Message POST path (default /messages)")
@click.option("--allowed-hosts", envvar="MCP_ALLOWED_HOSTS", help="Comma-separated Host allow-list")
@click.option("--allowed-origins", envvar="MCP_ALLOWED_ORIGINS", help="Comma-separated Origin allow-list")
@click.option(
    "--enable-dns-protection",
    is_flag=True,
    envvar="MCP_ENABLE_DNS_PROTECTION",
    help="Enforce the Host/Origin allow-lists",
)
def server(
    http_mode,
    full,
    region,
    host,
    port,
    sse_path,
    messages_path,
    allowed_hosts,
    allowed_origins,
    enable_dns_protection,
):
    """Start the Postman MCP server."""
    try:
        settings = ServerSettings.build(
            http=http_mode,
            full=full,
            region=region,
            api_key=os.environ.get("POSTMAN_API_KEY"),
            host=host,
            port=port,
            sse_path=sse_path,
            messages_path=messages_path,
            allowed_hosts=allowed_hosts,
            allowed_origins=allowed_origins,
            dns_protection=enable_dns_protection,
        )
    except InvalidRegionError as exc:
        log.error(f"Invalid region: {exc.region}")
        click.echo(f"Supported regions: {', '.join(SUPPORTED_REGIONS)}", err=True)
        sys.exit(1)
    except ConfigError as exc:
        log.error(str(exc))
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if settings.region:
        log.info(f"Using region: {settings.region} baseUrl={settings.base_url}")
    if settings.is_http and not settings.api_key:
        log.warning("POSTMAN_API_KEY not set; HTTP requests must include an API key header")

    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        log.error(f"Unhandled error during server execution: {exc}", exc_info=True)
        sys.exit(1)


async def _serve(settings: ServerSettings):
    from postman_mcp.server.dispatch import DispatchContext
    from postman_mcp.server.server import MCPServer
    from postman_mcp.tools import load_tools

    tools = load_tools(settings.tier)
    log.info(
        f"Server initialization starting — {Config.SERVER_NAME} v{Config.SERVER_VERSION} "
        f"tools={len(tools)} transport={settings.transport}"
    )

    context = DispatchContext(settings.base_url, settings.api_key)
    srv = MCPServer(settings, tools, context)

    if settings.is_http:
        from postman_mcp.server.app import serve_http
        await serve_http(srv)
    else:
        await srv.run_stdio()


@main.command()
@click.option("--full", is_flag=True, help="Show the full tool set")
@click.option("--json", "as_json", is_flag=True, help="Print tools/list JSON")
def tools(full, as_json):
    """List the tools the server would expose."""
    from postman_mcp.tools import load_tools

    registry = load_tools("full" if full else "minimal")

    if as_json:
        click.echo(json.dumps(registry.list_tools(), indent=2))
        return

    click.echo(f"{registry.tier} tier — {len(registry)} tools")
    for entry in registry.list_tools():
        click.echo(f"  {entry['name']:<24} {entry['description']}")


@main.command()
def init():
    """Create ~/.postman-mcp/config.env with the supported settings."""
    Config.ensure_dirs()

    config_env = Config.HOME_DIR / "config.env"
    if not config_env.exists():
        config_env.write_text(
            "# Postman MCP Configuration\n"
            "# Uncomment and edit as needed. Environment variables take precedence.\n"
            "\n"
            "# POSTMAN_API_KEY=PMAK-...\n"
            "# POSTMAN_API_REGION=us\n"
            "# POSTMAN_MCP_LOG_LEVEL=INFO\n"
            "# POSTMAN_MCP_LOG_FILE=\n"
            "# HOST=0.0.0.0\n"
            "# PORT=3000\n"
            "# MCP_SSE_PATH=/sse\n"
            "# MCP_MESSAGES_PATH=/messages\n"
            "# MCP_ALLOWED_HOSTS=localhost:3000\n"
            "# MCP_ALLOWED_ORIGINS=http://localhost:3000\n"
            "# MCP_ENABLE_DNS_PROTECTION=false\n"
        )

    click.echo(f"Postman MCP initialized at {Config.HOME_DIR}")
    click.echo(f"  Config: {config_env}")
    click.echo()
    click.echo("Next: set POSTMAN_API_KEY, then add the server to your MCP client.")
    click.echo("Run `postman-mcp mcp-config` to get the JSON snippet.")


@main.command("mcp-config")
@click.option("--http", "http_mode", is_flag=True, help="Config for a running HTTP+SSE server")
@click.option("--full", is_flag=True, help="Use the full tool set (stdio)")
@click.option("--url", default=f"http://localhost:{DEFAULT_PORT}/sse", help="SSE URL (with --http)")
def mcp_config(http_mode, full, url):
    """Print MCP config JSON for Claude Desktop or other MCP clients."""
    if http_mode:
        entry = {
            "url": url,
            "headers": {"x-postman-api-key": "<your-postman-api-key>"},
        }
    else:
        command, args = _find_executable()
        args = args + ["server"] + (["--full"] if full else [])
        entry = {
            "command": command,
            "args": args,
            "env": {"POSTMAN_API_KEY": "<your-postman-api-key>"},
        }

    config = {"mcpServers": {"postman": entry}}

    click.echo("Add this to your MCP client settings:\n")
    click.echo(json.dumps(config, indent=2))


@main.command()
@click.option("--url", default=f"http://localhost:{DEFAULT_PORT}", help="Server base URL")
def health(url):
    """Check a running HTTP server's /healthz."""

    async def check():
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(f"{url.rstrip('/')}/healthz")
        except httpx.RequestError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

        if response.status_code != 200:
            click.echo(f"Server returned {response.status_code}", err=True)
            sys.exit(1)

        data = response.json()
        click.echo(
            f"Server is healthy: {data.get('server')} v{data.get('version')} "
            f"tools={data.get('tools')} transport={data.get('transport')}"
        )

    asyncio.run(check())


def _find_executable():
    """Find the postman-mcp command path and any leading arguments."""
    path = shutil.which("postman-mcp")
    if path:
        return path, []
    # Fallback: use python -m postman_mcp
    return sys.executable, ["-m", "postman_mcp"]


if __name__ == "__main__":
    main()
