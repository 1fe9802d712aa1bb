"""
txreport CLI - Drive a regtest node through a transfer and report it.
"""

from __future__ import annotations

import sys

import typer
from loguru import logger
from pydantic import ValidationError

from txreport.config import NetworkType, Settings, get_settings
from txreport.errors import TxReportError
from txreport.models import format_btc

app = typer.Typer(
    name="txreport",
    help="Regtest transfer provenance report",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _load_settings(**overrides: object) -> Settings:
    try:
        return get_settings(**overrides)
    except ValidationError as e:
        # Logging is not configured yet
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def run(
    rpc_url: str | None = typer.Option(None, "--rpc-url", help="Node RPC URL"),
    rpc_user: str | None = typer.Option(None, "--rpc-user"),
    rpc_password: str | None = typer.Option(None, "--rpc-password"),
    miner_wallet: str | None = typer.Option(None, "--miner-wallet", help="Funded wallet name"),
    trader_wallet: str | None = typer.Option(None, "--trader-wallet", help="Receiver wallet"),
    amount: str | None = typer.Option(None, "--amount", "-a", help="Amount to send in BTC"),
    maturity: int | None = typer.Option(None, "--maturity", help="Coinbase maturity window"),
    payment_method: str | None = typer.Option(
        None, "--payment-method", help="sendtoaddress | send"
    ),
    output_path: str | None = typer.Option(None, "--output", "-o", help="Report file path"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Provision wallets, mature coinbase, send, confirm, and write the report."""
    from txreport.pipeline import Pipeline

    settings = _load_settings(
        rpc_url=rpc_url,
        rpc_user=rpc_user,
        rpc_password=rpc_password,
        miner_wallet=miner_wallet,
        trader_wallet=trader_wallet,
        transfer_amount_btc=amount,
        coinbase_maturity=maturity,
        payment_method=payment_method,
        output_path=output_path,
        log_level=log_level,
    )
    setup_logging(settings.log_level)

    try:
        result = Pipeline(settings).run()
    except TxReportError as e:
        logger.error(f"Run aborted: {e}")
        raise typer.Exit(1)

    record = result.record
    typer.echo("\n=== TRANSACTION SUMMARY ===")
    typer.echo(f"Transaction ID: {record.txid}")
    typer.echo(f"Sender input:   {record.sender_address} ({format_btc(record.sender_amount)} BTC)")
    typer.echo(
        f"Receiver:       {record.receiver_address} ({format_btc(record.receiver_amount)} BTC)"
    )
    typer.echo(f"Change:         {record.change_address} ({format_btc(record.change_amount)} BTC)")
    typer.echo(f"Fee:            {format_btc(record.fee)} BTC")
    typer.echo(f"Confirmed in block {record.block_height}: {record.block_hash}")
    typer.echo(f"Report:         {result.report_path}")


@app.command()
def extract(
    txid: str = typer.Argument(..., help="Confirmed transaction id"),
    receiver: str = typer.Option(..., "--receiver", "-r", help="Receiver address"),
    miner_wallet: str | None = typer.Option(None, "--wallet", "-w", help="Sender wallet"),
    network: NetworkType | None = typer.Option(None, "--network", "-n"),
    output_path: str | None = typer.Option(None, "--output", "-o"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Report an existing confirmed transaction sent by the wallet."""
    from txreport.pipeline import Pipeline

    settings = _load_settings(
        miner_wallet=miner_wallet, network=network, output_path=output_path, log_level=log_level
    )
    setup_logging(settings.log_level)

    try:
        record = Pipeline(settings).extract_only(txid, receiver)
    except TxReportError as e:
        logger.error(f"Extraction failed: {e}")
        raise typer.Exit(1)

    typer.echo(f"{record.txid}: fee {format_btc(record.fee)} BTC, block {record.block_height}")


@app.command()
def info(log_level: str | None = typer.Option(None, "--log-level", "-l")) -> None:
    """Show chain info and loaded wallets."""
    import httpx

    from txreport.rpc import RpcClient

    settings = _load_settings(log_level=log_level)
    setup_logging(settings.log_level)

    try:
        with RpcClient(settings.endpoint(), timeout=settings.rpc_timeout) as node:
            chain = node.get_blockchain_info()
            wallets = node.list_wallets()
    except (TxReportError, httpx.HTTPError) as e:
        logger.error(f"Failed to query node: {e}")
        raise typer.Exit(1)

    typer.echo(f"Chain:   {chain.chain}")
    typer.echo(f"Blocks:  {chain.blocks}")
    typer.echo(f"Tip:     {chain.bestblockhash}")
    typer.echo(f"Wallets: {', '.join(wallets) if wallets else '(none loaded)'}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
