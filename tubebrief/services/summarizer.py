import json
import os
from typing import List, Optional
from jinja2 import Environment, FileSystemLoader
from openai import OpenAI
from pydantic import ValidationError
from tubebrief.config import settings
from tubebrief.core.errors import SummaryError
from tubebrief.models.summary import ChunkSummary, SummaryResult
from tubebrief.models.transcript import TranscriptResult
from tubebrief.models.video import VideoMetadata
from tubebrief.utils.chunker import Chunker
from tubebrief.utils.retry import api_retry
from tubebrief.utils.logger import logger

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "prompts")

class SummarizerService:
    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None, chunker: Optional[Chunker] = None):
        self.model = model or settings.LLM_MODEL
        self.client = client or OpenAI(
            api_key=settings.LLM_API_KEY,
            base_url=settings.LLM_BASE_URL
        )
        self.chunker = chunker or Chunker(model_name=self.model, max_tokens=settings.SUMMARY_MAX_TOKENS)
        self.env = Environment(loader=FileSystemLoader(PROMPTS_DIR))
        self.map_template = self.env.get_template("map.jinja2")
        self.reduce_template = self.env.get_template("reduce.jinja2")

    @api_retry()
    def _call_llm(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": "You output JSON strictly grounded in the provided transcript. Do not add facts that are not in it."},
                {"role": "user", "content": prompt}
            ],
            temperature=settings.LLM_TEMPERATURE,
            response_format={"type": "json_object"}
        )
        return response.choices[0].message.content

    def _process_chunk(self, chunk: str, index: int, total: int, metadata: VideoMetadata) -> ChunkSummary:
        prompt = self.map_template.render(
            index=index,
            total=total,
            title=metadata.title,
            author=metadata.author,
            text=chunk
        )
        try:
            return ChunkSummary(**json.loads(self._call_llm(prompt)))
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.error(f"Failed to parse chunk summary {index}/{total}: {e}")
            return ChunkSummary(key_points=[])

    def summarize(self, transcript: TranscriptResult, metadata: VideoMetadata) -> SummaryResult:
        chunks = self.chunker.chunk(transcript.text)
        if len(chunks) <= 1:
            logger.info("Short transcript. Running one-pass summarization...")
            prompt = self.reduce_template.render(
                title=metadata.title,
                author=metadata.author,
                transcript=transcript.text,
                chunks=None,
                language=settings.OUTPUT_LANG
            )
        else:
            logger.info(f"Starting Map phase for {len(chunks)} chunks...")
            chunk_summaries: List[ChunkSummary] = []
            for i, chunk in enumerate(chunks, start=1):
                logger.info(f"Processing chunk {i}/{len(chunks)}...")
                chunk_summaries.append(self._process_chunk(chunk, i, len(chunks), metadata))
            logger.info("Starting Reduce phase...")
            prompt = self.reduce_template.render(
                title=metadata.title,
                author=metadata.author,
                transcript=None,
                chunks=chunk_summaries,
                language=settings.OUTPUT_LANG
            )

        response_json = self._call_llm(prompt)
        try:
            return SummaryResult(**json.loads(response_json))
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.error(f"Failed to parse final summary: {e}")
            raise SummaryError(f"LLM returned an unusable summary: {e}") from e
