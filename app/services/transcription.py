import asyncio
import logging

from app.config import Settings
from app.errors import UpstreamError
from app.services.audio_service import NormalizedAudio

logger = logging.getLogger(__name__)


class TranscriptionService:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._model = None

    def _get_model(self):
        """Lazy-load the whisper model on first use."""
        if self._model is None:
            from faster_whisper import WhisperModel

            logger.info("Loading whisper model %s (%s)", self.settings.whisper_model, self.settings.whisper_device)
            self._model = WhisperModel(
                self.settings.whisper_model,
                device=self.settings.whisper_device,
                compute_type=self.settings.whisper_compute_type,
            )
        return self._model

    async def transcribe(self, audio: NormalizedAudio) -> str:
        """Transcribe a normalized WAV and return the joined segment text."""
        model = await asyncio.to_thread(self._get_model)

        with audio.open() as stream:
            try:
                segments_iter, info = await asyncio.to_thread(
                    model.transcribe,
                    stream,
                    language=self.settings.whisper_language,
                    vad_filter=True,
                )
                # the generator does the decoding work, consume it off the event loop
                segments = await asyncio.to_thread(list, segments_iter)
            except (RuntimeError, ValueError) as exc:
                logger.error("Whisper transcription failed: %s", exc)
                raise UpstreamError("Transcription failed", details=str(exc)) from exc

        text = " ".join(seg.text.strip() for seg in segments if seg.text.strip())
        logger.info("Transcribed %.1fs of audio (%s), %d chars", info.duration, info.language, len(text))
        return text
