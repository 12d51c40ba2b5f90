import re
from typing import Iterable, List, Mapping

# Tên biến: chữ, số, gạch dưới
_NAME = re.compile(r"[A-Za-z0-9_]*")


def expand_word(word: str, environ: Mapping[str, str]) -> str:
    """
    Substitute the first $NAME in a word.

    Text around the reference is kept as is, an unset variable becomes the
    empty string and a later $ in the same word is left alone. A bare $
    (no name after it) leaves the word unchanged.
    """
    dollar = word.find("$")
    if dollar < 0:
        return word

    name = _NAME.match(word, dollar + 1).group()
    if not name:
        return word

    rest = word[dollar + 1 + len(name):]
    return word[:dollar] + environ.get(name, "") + rest


def expand_words(words: Iterable[str], environ: Mapping[str, str]) -> List[str]:
    """Return a new list with each word expanded."""
    return [expand_word(w, environ) for w in words]
