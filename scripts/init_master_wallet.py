"""
Report the master wallet status, or generate a new master key.

    python scripts/init_master_wallet.py            # balance and funding status
    python scripts/init_master_wallet.py --generate # print a fresh key for FUNDING__MASTER_PRIVATE_KEY
"""
import argparse
import asyncio

from eth_account import Account

from custody_engine.core.config import get_settings
from custody_engine.core.logging import configure_logging
from custody_engine.domain.funding import FundingService
from custody_engine.infrastructure.chain import RPCGateway


async def report_master_wallet() -> None:
    settings = get_settings()
    gateway = RPCGateway.from_settings(settings.chain)
    try:
        await gateway.ensure_ready()
        info = await FundingService.from_settings(settings, gateway).master_wallet_info()
    finally:
        await gateway.aclose()

    mode = "read-only" if info.read_only else "signing"
    print(f"Master wallet {info.address} ({mode})")
    print(f"Balance: {info.balance} {settings.chain.native_symbol} via {gateway.current_url}")
    if info.message:
        print(info.message)


def generate_master_key() -> None:
    account = Account.create()
    print(f"Address: {account.address}")
    print(f"FUNDING__MASTER_PRIVATE_KEY=0x{bytes(account.key).hex()}")
    print("Store the key in the deployment secret store; it is not written anywhere by this script.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--generate", action="store_true", help="generate a new master keypair")
    args = parser.parse_args()
    if args.generate:
        generate_master_key()
    else:
        configure_logging()
        asyncio.run(report_master_wallet())
