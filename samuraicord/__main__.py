import asyncio
import logging
import sys

from samuraicord.bot import BotState, create_bot
from samuraicord.chat import ChatAdapter
from samuraicord.config import AppConfig, load_config
from samuraicord.exceptions import ConfigError, TableError
from samuraicord.table import read_samurai_csv

# --- Basic Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s: %(message)s",
)


def load_state(config: AppConfig) -> BotState:
    adapter = ChatAdapter(config.chat)
    try:
        entries = read_samurai_csv(config.samurai_csv_path)
    except (OSError, TableError) as e:
        logging.error(f"Could not load samurai table from '{config.samurai_csv_path}': {e}")
        return BotState(config=config, adapter=adapter, table_error=e)
    logging.info(f"Loaded {len(entries)} samurai from '{config.samurai_csv_path}'")
    return BotState(config=config, adapter=adapter, entries=entries)


async def main(config: AppConfig) -> None:
    state = load_state(config)
    logging.info(f"Chat backend: {config.chat.base_url} (model: {config.chat.model})")
    try:
        async with create_bot(state) as discord_bot:
            await discord_bot.start(config.bot_token)
    finally:
        await state.adapter.aclose()


def run() -> None:
    try:
        config = load_config().validate()
    except ConfigError as e:
        logging.critical(str(e))
        sys.exit(1)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
