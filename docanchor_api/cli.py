"""CLI commands for DocAnchor."""

import click

from docanchor_api.errors import AnchorError
from docanchor_api.hashing.digest import hash_content, hash_file
from docanchor_api.settings import get_settings


@click.group()
def cli():
    """DocAnchor CLI."""
    pass


@cli.command("deploy-contract")
@click.option("--private-key", envvar="LEDGER_PRIVATE_KEY", help="Deployer private key.")
@click.option("--output", "output_path", default=None, help="Where to write the deployment file.")
def deploy_contract(private_key, output_path):
    """Compile and deploy the report storage contract."""
    from docanchor_api.ledger.bootstrap import DeploymentError
    from docanchor_api.ledger.bootstrap import deploy_contract as run_deployment

    click.echo("Compiling and deploying contract...")
    try:
        deployment = run_deployment(get_settings(), private_key=private_key, output_path=output_path)
    except (DeploymentError, ValueError) as e:
        click.echo(f"✗ Deployment failed: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"✓ Contract deployed at {deployment.address}")
    tx_url = deployment.network.explorer_tx_url(deployment.deployment_tx)
    if tx_url:
        click.echo(f"  Transaction: {tx_url}")


@cli.command("init-db")
def init_db():
    """Create database tables (development)."""
    from docanchor_api.db.session import init_db as create_tables

    click.echo("Creating database tables...")
    create_tables()
    click.echo("✓ Database tables created.")


@cli.command("hash")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--text", is_flag=True, help="Hash the file's text content (SHA-256) instead of its bytes.")
def hash_document(path, text):
    """Print the digest a document would be anchored under."""
    if text:
        with open(path, encoding="utf-8") as f:
            digest = hash_content(f.read())
    else:
        with open(path, "rb") as f:
            digest = hash_file(f.read())
    click.echo(f"{digest.value} ({digest.method.value})")


@cli.command("status")
@click.argument("report_id")
def status(report_id):
    """Look up a report on the ledger."""
    from docanchor_api.ledger.gateway import get_read_gateway

    try:
        report_status = get_read_gateway().status(report_id)
    except AnchorError as e:
        click.echo(f"✗ {e.message}: {e.detail}", err=True)
        raise SystemExit(1)

    if not report_status.exists:
        click.echo(f"Report {report_id} not found on the ledger")
        return
    record = report_status.record
    click.echo(f"Report {report_id}")
    click.echo(f"  hash:      {record.report_hash}")
    click.echo(f"  timestamp: {record.timestamp_iso}")
    click.echo(f"  verifier:  {record.verifier}")


if __name__ == "__main__":
    cli()
