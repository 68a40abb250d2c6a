"""
======================================================================
 GuildLevels Permission Runtime — Version v0.1.0 (Build 2026.10)
======================================================================
"""

"""
Permission runtime entrypoint.

This module boots the level-based permission resolver as an independent
process. It owns:

- event loop creation
- configuration loading (.env + permissions.json)
- the initial level load (startup aborts if it fails)
- the optional level store hot-reload watcher
- orderly startup and shutdown

IMPORTANT:
- This runtime MUST NOT register Discord commands
- Host bots embed LevelResolver directly; this process exists to validate
  and keep levels loaded for long-running deployments
"""

import asyncio
import signal
import sys
from typing import Optional

from dotenv import load_dotenv

from runtime.version import as_string
from shared.config.permissions import load_permissions_config, store_watch_paths
from shared.logging.logger import get_logger
from shared.runtime.hot_reload import HotReloadConfig, build_hot_reload_watcher
from services.discord.permissions.resolver import LevelResolver, build_level_resolver

log = get_logger("core.permissions_app")


# ----------------------------------------------------------------------
# MAIN ASYNC ENTRYPOINT
# ----------------------------------------------------------------------

async def main(
    stop_event: asyncio.Event,
    *,
    resolver: Optional[LevelResolver] = None,
) -> LevelResolver:
    load_dotenv()

    log.info(f"{as_string()} booting")

    config = load_permissions_config()
    resolver = resolver or build_level_resolver(config)

    # --------------------------------------------------
    # INITIAL LEVEL LOAD
    # --------------------------------------------------
    try:
        await resolver.boot()
        log.info("Permission levels loaded successfully")
    except Exception as e:
        log.error(f"Failed to load permission levels: {e}")
        raise

    # --------------------------------------------------
    # HOT RELOAD (OPTIONAL)
    # --------------------------------------------------
    watcher = build_hot_reload_watcher(
        HotReloadConfig.from_env(),
        store_watch_paths(config),
        resolver.reload,
    )
    watcher_task: Optional[asyncio.Task] = None
    if watcher is not None:
        watcher.prime()
        watcher_task = asyncio.create_task(watcher.run(stop_event))

    # --------------------------------------------------
    # BLOCK UNTIL SHUTDOWN SIGNAL
    # --------------------------------------------------
    await stop_event.wait()

    log.info("Permission runtime shutdown initiated")

    if watcher_task is not None:
        try:
            await watcher_task
        except Exception as e:
            log.warning(f"Hot reload watcher shutdown error ignored: {e}")

    log.info("Permission runtime stopped")
    return resolver


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    """
    Windows-safe Ctrl+C handler.
    Uses signal.signal + asyncio.Event to unwind cleanly.
    """

    def _handler(signum, frame):
        loop.call_soon_threadsafe(stop_event.set)

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError) as e:
        log.warning(f"Signal handlers not installed: {e}")


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run() -> int:
    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    _install_signal_handlers(loop, stop_event)

    exit_code = 0
    try:
        loop.run_until_complete(main(stop_event))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received; shutdown initiated")
        stop_event.set()

    except Exception:
        exit_code = 1

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        loop.run_until_complete(loop.shutdown_asyncgens())

        asyncio.set_event_loop(None)
        loop.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(run())
