"""Speech synthesis adapters: one text segment in, MP3 bytes out."""

import asyncio
import logging
from abc import ABC, abstractmethod

import aiohttp
import edge_tts
import openai

from gmail_tts.constants import (
    AUDIO_FORMAT,
    EDGE_TTS_RATE,
    EDGE_TTS_VOICE,
    OPENAI_TTS_MODEL,
    OPENAI_TTS_VOICE,
    TTS_PROVIDERS,
)
from gmail_tts.errors import (
    ProviderError,
    RateLimitError,
    SynthesisTimeoutError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class Synthesizer(ABC):
    """Abstract text-to-speech backend. Each call is independent and billable."""

    @abstractmethod
    def synthesize(self, text: str, timeout: float | None = None) -> bytes:
        """
        Converts text to audio bytes within timeout seconds.

        Raises:
            SynthesisTimeoutError: If the deadline expires.
            RateLimitError: If the provider throttles the call.
            ProviderError: If the provider answers with an error.
            TransportError: If the provider cannot be reached.
        """
        pass


class OpenAISynthesizer(Synthesizer):
    """OpenAI audio.speech endpoint. One attempt per call, no SDK retries."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = OPENAI_TTS_MODEL,
        voice: str = OPENAI_TTS_VOICE,
        client: openai.OpenAI | None = None,
    ):
        if client is None:
            if not api_key:
                raise ValidationError("OpenAI API key is required")
            client = openai.OpenAI(api_key=api_key, max_retries=0)
        self.client = client
        self.model = model
        self.voice = voice or OPENAI_TTS_VOICE

    def synthesize(self, text: str, timeout: float | None = None) -> bytes:
        try:
            response = self.client.with_options(timeout=timeout, max_retries=0).audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
                response_format=AUDIO_FORMAT,
            )
        except openai.APITimeoutError as e:
            raise SynthesisTimeoutError(f"OpenAI speech call timed out after {timeout}s") from e
        except openai.APIConnectionError as e:
            raise TransportError(f"OpenAI unreachable: {e}") from e
        except openai.RateLimitError as e:
            raise RateLimitError(f"OpenAI rate limit: {e.message}", status_code=e.status_code) from e
        except openai.APIStatusError as e:
            raise ProviderError(f"openai error {e.status_code}: {e.message}", status_code=e.status_code) from e

        data = response.content
        if not data:
            raise ProviderError(f"OpenAI returned no audio for: {text[:50]}...")
        return data


class EdgeSynthesizer(Synthesizer):
    """Microsoft Edge neural voices via edge-tts.

    Sync wrapper around edge_tts.Communicate(). Rate is a relative string
    like "-10%". Audio frames are collected in memory.
    """

    def __init__(self, voice: str = EDGE_TTS_VOICE, rate: str = EDGE_TTS_RATE):
        self.voice = voice or EDGE_TTS_VOICE
        self.rate = rate

    async def _collect(self, text: str) -> bytes:
        communicate = edge_tts.Communicate(text, self.voice, rate=self.rate)
        audio = bytearray()
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                audio.extend(chunk["data"])
        return bytes(audio)

    def synthesize(self, text: str, timeout: float | None = None) -> bytes:
        try:
            data = asyncio.run(asyncio.wait_for(self._collect(text), timeout=timeout))
        except asyncio.TimeoutError as e:
            raise SynthesisTimeoutError(f"edge-tts call timed out after {timeout}s") from e
        except edge_tts.exceptions.NoAudioReceived as e:
            raise ProviderError(f"edge-tts returned no audio: {e}") from e
        except edge_tts.exceptions.WebSocketError as e:
            raise TransportError(f"edge-tts websocket failure: {e}") from e
        except edge_tts.exceptions.EdgeTTSException as e:
            raise ProviderError(f"edge-tts error: {e}") from e
        except aiohttp.ClientResponseError as e:
            if e.status == 429:
                raise RateLimitError(f"edge-tts rate limit: {e.message}", status_code=e.status) from e
            raise ProviderError(f"edge-tts error {e.status}: {e.message}", status_code=e.status) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"edge-tts unreachable: {e}") from e

        logger.debug("edge-tts %s returned %d bytes", self.voice, len(data))
        # 0-byte output counts as failure
        if not data:
            raise ProviderError(f"edge-tts produced no audio for: {text[:50]}...")
        return data


def build_synthesizer(provider: str, api_key: str = "", voice: str = "") -> Synthesizer:
    """Construct the configured synthesis backend."""
    if provider == "openai":
        return OpenAISynthesizer(api_key=api_key, voice=voice or OPENAI_TTS_VOICE)
    if provider == "edge":
        return EdgeSynthesizer(voice=voice or EDGE_TTS_VOICE)
    raise ValidationError(f"Unknown TTS provider {provider!r}; expected one of {TTS_PROVIDERS}")
