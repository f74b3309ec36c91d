from dataclasses import dataclass, field
import logging
import random
import re
from typing import Optional

import discord
from discord.app_commands import Group
from discord.ext import commands

from samuraicord.chat import ChatAdapter
from samuraicord.config import AppConfig
from samuraicord.detect import contains_samurai_phrase
from samuraicord.exceptions import ChatError
from samuraicord.table import SamuraiEntry, get_samurai_name

DISCORD_CHAR_LIMIT = 2000
EMBED_COLOR = discord.Color.dark_red()
THINKING_TAGS_RE = re.compile(r"<think(ing)?>.*?</think(ing)?>", re.DOTALL)


@dataclass
class BotState:
    config: AppConfig
    adapter: ChatAdapter
    entries: list[SamuraiEntry] = field(default_factory=list)
    table_error: Optional[Exception] = None
    rng: random.Random = field(default_factory=random.Random)

    def draw(self) -> Optional[str]:
        if self.table_error is not None:
            logging.error(f"Samurai table is unavailable: {self.table_error}")
            return None
        name = get_samurai_name(self.entries, self.rng)
        if name is None:
            logging.error("Samurai not found")
        return name


# --- Helpers ---
def split_message(text: str, limit: int = DISCORD_CHAR_LIMIT) -> list[str]:
    return [text[i:i + limit] for i in range(0, len(text), limit)]


def clean_reply(text: str, filter_thinking: bool = True) -> str:
    if filter_thinking:
        text = THINKING_TAGS_RE.sub("", text)
    # Discord refuses empty messages.
    return text.strip() or "..."


def strip_mention(content: str, user_id: int) -> str:
    return re.sub(rf"<@!?{user_id}>", "", content).strip()


async def samurai_reaction(message: discord.Message, emoji_name: str) -> bool:
    guild = message.guild
    if guild is None:
        logging.info("Cannot react in DMs.")
        return False

    emoji = discord.utils.get(guild.emojis, name=emoji_name)
    if emoji is None:
        # The cache can lag behind emoji uploads.
        try:
            emoji = discord.utils.get(await guild.fetch_emojis(), name=emoji_name)
        except discord.HTTPException as e:
            logging.error(f"Failed to fetch emojis of guild '{guild.name}': {e}")
            return False

    if emoji is None:
        logging.error(f"Custom emoji ':{emoji_name}:' not found in guild '{guild.name}' (ID: {guild.id}).")
        return False

    logging.info(f"Found emoji: {emoji.name} (ID: {emoji.id})")
    try:
        await message.add_reaction(emoji)
    except discord.HTTPException as e:
        logging.error(f"Error reacting to message {message.id}: {e}")
        return False
    logging.info(f"Successfully reacted with :{emoji_name}: to message {message.id}")
    return True


async def samurai_reply(message: discord.Message, content: str) -> None:
    for chunk in split_message(content):
        try:
            await message.reply(chunk, mention_author=False)
        except discord.HTTPException as e:
            logging.error(f"Error replying to message {message.id}: {e}")
            return


async def answer_with_chat(state: BotState, message: discord.Message, text: str) -> None:
    logging.info(f"Chat request (user ID: {message.author.id}, length: {len(text)})")
    try:
        async with message.channel.typing():
            answer = await state.adapter.chat_once(text)
    except ChatError as e:
        logging.exception(f"Chat request failed ({e.kind})")
        await message.channel.send(f"Sorry, I couldn't get an answer from Ollama ({e.kind}). Please try again later.")
        return
    await samurai_reply(message, clean_reply(answer, state.config.filter_thinking_tags))


async def handle_message(state: BotState, bot_user: Optional[discord.ClientUser], message: discord.Message) -> None:
    if message.author.bot:
        return

    if message.guild is None:
        logging.info(f"Received DM from user: {message.author.name}")
        return

    if contains_samurai_phrase(message.content):
        logging.info(f"Received '侍' from user: {message.author.name}")
        await samurai_reaction(message, state.config.reaction_emoji)
        if (content := state.draw()) is not None:
            await samurai_reply(message, content)
            logging.info(f"Replied to message: {message.id}")
        return

    if state.config.chat_enabled and bot_user is not None and bot_user in message.mentions:
        await answer_with_chat(state, message, strip_mention(message.content, bot_user.id))


# --- Slash Commands ---
def build_command_group(state: BotState) -> Group:
    samuraicord_group = Group(name="samuraicord", description="Commands for the samurai bot.")

    @samuraicord_group.command(name="help", description="Shows how to use the bot.")
    async def help_command(interaction: discord.Interaction):
        embed = discord.Embed(title="samuraicord Help", color=EMBED_COLOR)
        embed.add_field(name="Samurai", value="Write anything ending in `侍` and I'll react and introduce a samurai.", inline=False)
        embed.add_field(name="Commands", value="`/samuraicord draw` - Introduce a random samurai.\n`/samuraicord ask` - Ask the local model a question.", inline=False)
        if state.config.chat_enabled:
            embed.add_field(name="Chat", value="`@mention` me with a question to get an answer from the local model.", inline=False)
        await interaction.response.send_message(embed=embed)

    @samuraicord_group.command(name="draw", description="Introduce a random samurai.")
    async def draw(interaction: discord.Interaction):
        content = state.draw()
        if content is None:
            await interaction.response.send_message("No samurai available right now.", ephemeral=True)
            return
        await interaction.response.send_message(split_message(content)[0])

    @samuraicord_group.command(name="ask", description="Ask the local model a question.")
    async def ask(interaction: discord.Interaction, prompt: str):
        if not state.config.chat_enabled:
            await interaction.response.send_message("Chat is disabled on this bot.", ephemeral=True)
            return
        await interaction.response.defer()
        try:
            answer = await state.adapter.chat_once(prompt)
        except ChatError as e:
            logging.exception(f"Chat request failed ({e.kind})")
            await interaction.followup.send(f"Sorry, I couldn't get an answer from Ollama ({e.kind}).")
            return
        for chunk in split_message(clean_reply(answer, state.config.filter_thinking_tags)):
            await interaction.followup.send(chunk)

    return samuraicord_group


# --- Bot Initialization ---
def create_bot(state: BotState) -> commands.Bot:
    intents = discord.Intents.default()
    intents.message_content = True
    intents.emojis_and_stickers = True
    activity = discord.CustomActivity(name=state.config.status_message)
    discord_bot = commands.Bot(intents=intents, activity=activity, command_prefix=None)
    discord_bot.tree.add_command(build_command_group(state))

    @discord_bot.event
    async def on_ready() -> None:
        logging.info(f"{discord_bot.user} is connected!")
        try:
            await discord_bot.tree.sync()
        except discord.HTTPException as e:
            logging.error(f"Failed to sync slash commands: {e}")

    @discord_bot.event
    async def on_message(new_msg: discord.Message) -> None:
        await handle_message(state, discord_bot.user, new_msg)

    return discord_bot
