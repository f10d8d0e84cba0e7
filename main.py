import argparse
import asyncio
import logging
import signal
from colorama import init, Fore

import config
from alert_dispatcher import AlertDispatcher
from chain_adapters import get_adapter_for_chain
from dex.uniswap_v2 import LiquidityResolver
from enricher import CandidateEnricher
from modules.block_listener import NewBlockFeed
from modules.block_queue import BlockIngestionQueue
from modules.settle_timer import SettleTimer
from pipeline import BlockPipeline
from scanner import DeploymentScanner
from subscription_store import SubscriptionStore
from telegram_commands import TelegramCommandHandler
from telegram_notifier import TelegramNotifier
from verification import EtherscanClient, ProvenanceResolver

init(autoreset=True)

logger = logging.getLogger("gem_detector")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="New Token Gem Detector")
    parser.add_argument("--chain", default="ethereum",
                        help="Chain to monitor (ethereum, base). Default: ethereum")
    parser.add_argument("--settle-delay", type=float, default=config.SETTLE_DELAY_SECONDS,
                        help="Seconds to wait before the liquidity lookup of each token")
    parser.add_argument("--workers", type=int, default=config.ENRICH_WORKERS,
                        help="Max tokens enriched in parallel per block")
    parser.add_argument("--max-pending", type=int, default=config.MAX_PENDING_BLOCKS,
                        help="Max queued blocks before the oldest is dropped")
    parser.add_argument("--no-commands", action="store_true",
                        help="Do not poll Telegram for subscription commands")
    return parser.parse_args(argv)


async def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    enabled_chains = config.get_enabled_chains()
    if args.chain.lower() not in enabled_chains:
        print(f"{Fore.RED}❌ Chain '{args.chain}' is not enabled in chains.yaml "
              f"(enabled: {', '.join(enabled_chains) or 'none'})")
        return 1

    chain_config = config.get_chain_config(args.chain)
    adapter = get_adapter_for_chain(args.chain, chain_config)
    if adapter is None or not adapter.connect():
        print(f"{Fore.RED}❌ No chain connected! Check configuration and RPC endpoints.")
        return 1

    print(f"{Fore.GREEN}🚀 New Token Gem Detector")
    print(f"{Fore.CYAN}📡 Chain: {args.chain.upper()} | workers: {args.workers} | "
          f"settle delay: {args.settle_delay}s | max pending blocks: {args.max_pending}\n")
    if not config.TELEGRAM_BOT_TOKEN:
        print(f"{Fore.YELLOW}⚠️  TELEGRAM_BOT_TOKEN missing - alerts will only be logged")
    if not config.ETHERSCAN_API_KEY:
        print(f"{Fore.YELLOW}⚠️  ETHERSCAN_API_KEY missing - contracts will show as unverified")

    retry = dict(max_retries=config.RETRY_ATTEMPTS, base_delay=config.RETRY_BASE_DELAY)

    store = SubscriptionStore()
    notifier = TelegramNotifier(config.TELEGRAM_BOT_TOKEN)
    etherscan = EtherscanClient(chain_config)
    settle_timer = SettleTimer(args.settle_delay)

    enricher = CandidateEnricher(
        adapter,
        ProvenanceResolver(etherscan, **retry),
        LiquidityResolver(adapter, chain_config['factories']['uniswap_v2'],
                          chain_config['weth_address'], **retry),
        settle_timer,
        **retry,
    )
    pipeline = BlockPipeline(
        DeploymentScanner(adapter, **retry),
        enricher,
        AlertDispatcher(store, notifier, chain_config),
        max_workers=args.workers,
    )

    queue = BlockIngestionQueue(pipeline.process_block, max_pending=args.max_pending, name=args.chain)
    feed = NewBlockFeed(
        adapter,
        poll_interval=config.BLOCK_POLL_INTERVAL,
        disconnect_after=config.DISCONNECT_AFTER_FAILURES,
        on_disconnect=queue.pause,
        on_reconnect=queue.resume,
    )
    feed.subscribe(queue.submit)

    commands = TelegramCommandHandler(
        config.TELEGRAM_BOT_TOKEN, store, notifier,
        default_threshold=config.DEFAULT_THRESHOLD_ETH,
        poll_interval=config.COMMAND_POLL_INTERVAL,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass  # Windows

    await notifier.start()
    command_task = None
    if not args.no_commands:
        command_task = asyncio.create_task(commands.start_polling(), name="telegram-commands")

    queue.start()
    feed.start()

    try:
        await stop_event.wait()
    finally:
        print(f"\n{Fore.YELLOW}🛑 Shutting down...")
        await feed.stop()
        settle_timer.cancel()
        await queue.stop(grace=config.SHUTDOWN_GRACE_SECONDS)
        await pipeline.drain()
        if command_task:
            command_task.cancel()
            await asyncio.gather(command_task, return_exceptions=True)
        await etherscan.close()
        await notifier.close()
        logger.info(f"📊 Queue: {queue.stats()} | Pipeline: {pipeline.stats} | "
                    f"Registry: {etherscan.get_stats()}")
    return 0


def run():
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
