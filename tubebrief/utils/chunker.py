import tiktoken
from typing import List
from tubebrief.utils.logger import logger

class Chunker:
    def __init__(self, model_name: str = "gpt-4o", max_tokens: int = 6000):
        self.max_tokens = max_tokens
        try:
            self.encoding = tiktoken.encoding_for_model(model_name)
        except KeyError:
            self.encoding = tiktoken.get_encoding("cl100k_base")

    def count_tokens(self, text: str) -> int:
        return len(self.encoding.encode(text))

    def _split_long_line(self, line: str) -> List[str]:
        tokens = self.encoding.encode(line)
        return [self.encoding.decode(tokens[i:i + self.max_tokens]) for i in range(0, len(tokens), self.max_tokens)]

    def chunk(self, text: str) -> List[str]:
        """Split plain transcript text into line-aligned chunks under the token limit."""
        chunks = []
        current_lines: List[str] = []
        current_tokens = 0

        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            line_tokens = self.count_tokens(line)
            pieces = [line] if line_tokens <= self.max_tokens else self._split_long_line(line)
            for piece in pieces:
                piece_tokens = line_tokens if len(pieces) == 1 else self.count_tokens(piece)
                if current_tokens + piece_tokens > self.max_tokens and current_lines:
                    chunks.append("\n".join(current_lines))
                    current_lines = []
                    current_tokens = 0
                current_lines.append(piece)
                current_tokens += piece_tokens

        if current_lines:
            chunks.append("\n".join(current_lines))

        logger.info(f"Split transcript into {len(chunks)} chunks.")
        return chunks
