# cli.py
import logging
from pathlib import Path

import click

from report_uploader.auth.msal_client import MsalAuthClient
from report_uploader.config.settings import get_settings
from report_uploader.errors import ReportUploaderError
from report_uploader.graph.client import GraphClient
from report_uploader.graph.onedrive import probe_site_candidates, upload_with_fallback
from report_uploader.main import configure_logging
from report_uploader.reports import ReportType, format_report_file_name

logger = logging.getLogger(__name__)


def _mask(value):
    if not value:
        return "<not set>"
    return value[:4] + "..." if len(value) > 8 else "****"


@click.group()
def cli():
    """Report uploader: API server and OneDrive upload tools"""
    pass


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  Environment: {settings.environment}")
    print(f"  Listen: {settings.host}:{settings.port}")
    print(f"  Client ID: {settings.microsoft_client_id or '<not set>'}")
    print(f"  Client Secret: {_mask(settings.microsoft_client_secret)}")
    print(f"  Tenant ID: {settings.microsoft_tenant_id or '<not set>'}")
    print(f"  Redirect URI: {settings.redirect_uri}")
    print(f"  Frontend URL: {settings.frontend_url}")
    print(f"  Allowed Domain: {settings.allowed_email_domain or '<any>'}")
    print(f"  SharePoint Site: {settings.sharepoint_hostname or '<disabled>'}/sites/{settings.sharepoint_site_name}")
    print(f"  Max Upload Size: {settings.max_upload_size_bytes} bytes")
    print(f"  Chunk Size: {settings.upload_chunk_size_bytes} bytes")


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to HOST setting)")
@click.option("--port", type=int, default=None, help="Port (defaults to PORT setting)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host, port, reload):
    """Run the API server"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "report_uploader.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--token", "-t", envvar="GRAPH_ACCESS_TOKEN", required=True,
              help="Delegated Graph access token (or GRAPH_ACCESS_TOKEN)")
@click.option("--report-type",
              type=click.Choice([t.name for t in ReportType], case_sensitive=False),
              default=None,
              help="Name the file after a report type")
@click.option("--custom-name", default=None, help="Report name when --report-type is OTHER")
@click.option("--name", "file_name", default=None, help="Remote file name (overrides --report-type)")
def upload(file_path, token, report_type, custom_name, file_name):
    """Upload FILE_PATH into today's folder of the first writable destination"""
    settings = get_settings()
    configure_logging(settings.log_level)

    if not file_name:
        if report_type:
            try:
                file_name = format_report_file_name(
                    file_path.name, ReportType[report_type.upper()], custom_name
                )
            except ValueError as e:
                raise click.BadParameter(str(e), param_hint="--custom-name") from e
        else:
            file_name = file_path.name

    with GraphClient(token, settings.graph_base_url, settings.graph_timeout_seconds) as client:
        try:
            result = upload_with_fallback(client, file_path.read_bytes(), file_name, settings)
        except ReportUploaderError as e:
            print(f"❌ Upload failed: {e}")
            raise SystemExit(1)

    print("✅ Upload completed")
    print(f"  Destination: {result.destination.value}"
          f"{f' ({result.site_name})' if result.site_name else ''}")
    print(f"  Folder: {result.folder}")
    print(f"  Name: {file_name}")
    print(f"  URL: {result.web_url or 'N/A'}")


@cli.command()
def probe_sites():
    """Check which SharePoint site-path formats resolve, using an app-only token"""
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        token = MsalAuthClient(settings).acquire_app_token()
    except ReportUploaderError as e:
        print(f"❌ Could not get an app token: {e}")
        raise SystemExit(1)

    with GraphClient(token, settings.graph_base_url, settings.graph_timeout_seconds) as client:
        probes = probe_site_candidates(client, settings)

    if not probes:
        print("No SharePoint site configured (SHAREPOINT_HOSTNAME is empty)")
        return
    for probe in probes:
        if probe.ok:
            print(f"✅ {probe.label}: site id {probe.site_id}")
        else:
            print(f"❌ {probe.label}: {probe.error}")


if __name__ == "__main__":
    cli()
