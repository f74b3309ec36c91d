import re

# Something, possibly spanning several lines, followed by 侍: "ピタッとハウス侍", "ゲームしたい侍".
SAMURAI_PHRASE_RE = re.compile(r"[\s\S]+?侍")


def contains_samurai_phrase(text: str) -> bool:
    return SAMURAI_PHRASE_RE.search(text) is not None
