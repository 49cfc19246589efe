import logging

import tiktoken

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "cl100k_base"


class TokenizerError(RuntimeError):
    """The BPE encoding could not be loaded."""


class Tokenizer:
    """Counts BPE tokens for arbitrary text.

    Meant to be scoped to a single request::

        with Tokenizer() as tokenizer:
            n = tokenizer.count(text)

    The encoder reference is dropped on exit, whether or not the block raised.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        self._encoding_name = encoding_name
        self._encoding: tiktoken.Encoding | None = None

    def __enter__(self) -> "Tokenizer":
        try:
            self._encoding = tiktoken.get_encoding(self._encoding_name)
        except Exception as exc:
            raise TokenizerError(
                f"Failed to load tokenizer encoding '{self._encoding_name}': {exc}"
            ) from exc
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        self._encoding = None

    def count(self, text: str) -> int:
        if self._encoding is None:
            raise TokenizerError("Tokenizer used outside of its context")
        if not text:
            return 0
        # Special-token markers in user content are counted as plain text.
        return len(self._encoding.encode(text, disallowed_special=()))
