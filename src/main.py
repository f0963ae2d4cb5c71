import argparse
import logging
import signal
from queue import Queue
from typing import Any, Callable, Optional

from app_config import (
    AppConfigurationError,
    load_app_config,
    load_secret_config,
    resolve_config_path,
)
from document import (
    PdfDocumentSession,
    QueueRecognitionEventPublisher,
    SessionStore,
    TesseractTextRecognizer,
    TextRecognitionService,
)
from runtime import ReaderSession, RuntimeBootstrap, RuntimeEngine, RuntimeHooks
from server import ServerConfigurationError, UIServer, UIServerConfig
from speech import (
    DisabledSpeechEngine,
    HighlightTracker,
    LanguageDetector,
    PlaybackController,
    QueueEngineEventPublisher,
    SpeechEngine,
    UtteranceBuilder,
    VoiceSelector,
)
from tts import (
    PiperSpeechEngine,
    PiperTTSEngine,
    SoundDeviceAudioOutput,
    TTSConfig,
    TTSConfigurationError,
    TTSError,
)


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("reader_app")


def setup_signal_handlers(request_stop: Callable[[], None]) -> None:
    """Set up graceful shutdown on SIGTERM and SIGINT."""
    logger = logging.getLogger("reader_app")

    def signal_handler(signum: int, frame) -> None:
        del frame
        logger.info("%s received, stopping...", signal.Signals(signum).name)
        request_stop()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Read text and scanned PDF pages aloud with synchronized highlighting.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.toml (defaults to APP_CONFIG_FILE or ./config.toml)",
    )
    parser.add_argument(
        "--document",
        default=None,
        help="PDF document to open at startup",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the reader until interrupted."""
    args = parse_args(argv)
    logger = setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    # Load typed app configuration and secrets.
    try:
        config_path = resolve_config_path(args.config)
        app_config = load_app_config(str(config_path))
        secret_config = load_secret_config()
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        return 1

    event_queue: Queue[Any] = Queue()

    # Speech engine; without TTS the reader still handles text and documents.
    speech_engine: SpeechEngine = DisabledSpeechEngine()
    piper_engine: Optional[PiperSpeechEngine] = None
    if app_config.tts.enabled:
        try:
            tts_config = TTSConfig.from_settings(
                app_config.tts,
                hf_token=secret_config.hf_token,
            )
            tts_engine = PiperTTSEngine(
                config=tts_config,
                logger=logging.getLogger("tts.engine"),
            )
            tts_output = SoundDeviceAudioOutput(
                output_device_index=tts_config.output_device_index,
                logger=logging.getLogger("tts.output"),
            )
            piper_engine = PiperSpeechEngine(
                engine=tts_engine,
                output=tts_output,
                publisher=QueueEngineEventPublisher(event_queue),
                logger=logging.getLogger("tts"),
            )
            speech_engine = piper_engine
            logger.info("TTS enabled (default voice: %s)", tts_engine.default_voice_id)
        except (TTSConfigurationError, TTSError) as error:
            logger.error("TTS initialization error: %s", error)
            logger.warning("Continuing without speech output.")
            speech_engine = DisabledSpeechEngine(f"Speech output unavailable: {error}")
            piper_engine = None
    else:
        logger.warning("TTS is disabled; speak commands will be rejected.")

    reader_settings = app_config.reader
    selector = VoiceSelector(
        speech_engine.enumerate_voices,
        default_voice=piper_engine.default_voice if piper_engine is not None else None,
        logger=logging.getLogger("speech.voices"),
    )
    detector = LanguageDetector(
        primary_language=reader_settings.primary_language,
        cjk_language=reader_settings.cjk_language,
        languages=reader_settings.languages,
    )
    controller = PlaybackController(
        UtteranceBuilder(detector, selector, logger=logging.getLogger("speech.utterances")),
        speech_engine,
        tracker=HighlightTracker(logger=logging.getLogger("speech.highlight")),
        logger=logging.getLogger("speech.playback"),
    )
    try:
        reader = ReaderSession(
            controller,
            text=reader_settings.default_text,
            rate=reader_settings.rate,
            gender=reader_settings.gender,
            logger=logging.getLogger("runtime.reader"),
        )
    except ValueError as error:
        logger.error("Reader configuration error: %s", error)
        return 1

    ocr_settings = app_config.ocr
    recognition = TextRecognitionService(
        TesseractTextRecognizer(
            languages=ocr_settings.languages,
            page_segmentation_mode=ocr_settings.page_segmentation_mode,
            tesseract_cmd=ocr_settings.tesseract_cmd,
            logger=logging.getLogger("document.ocr"),
        ),
        QueueRecognitionEventPublisher(event_queue),
        dpi=ocr_settings.dpi,
        logger=logging.getLogger("document.ocr"),
    )
    session_store = SessionStore(
        app_config.session.store_file,
        logger=logging.getLogger("document.store"),
    )

    # Optional UI server for static page + websocket updates
    ui_server: Optional[UIServer] = None
    ui_server_config: Optional[UIServerConfig] = None
    try:
        ui_server_config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error("UI server configuration error: %s", error)
        logger.warning("Continuing without UI server.")

    if ui_server_config and ui_server_config.enabled:
        try:
            ui_server = UIServer(
                config=ui_server_config,
                command_sink=event_queue.put,
                logger=logging.getLogger("ui_server"),
            )
            logger.info("Starting UI server...")
            ui_server.start(timeout_seconds=5.0)
            logger.info(
                "UI server ready at http://%s:%d",
                ui_server.host,
                ui_server.port,
            )
        except (OSError, RuntimeError) as error:
            logger.error("UI server startup failed: %s", error)
            logger.warning("Continuing without UI server.")
            ui_server = None

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logger,
            event_queue=event_queue,
            reader=reader,
            document=PdfDocumentSession(logger=logging.getLogger("document.pdf")),
            recognition=recognition,
            session_store=session_store,
            ui_server=ui_server,
            speech_engine=piper_engine,
            initial_document=args.document,
            hooks=RuntimeHooks(setup_signal_handlers=setup_signal_handlers),
        )
    )
    return engine.run()


if __name__ == "__main__":
    raise SystemExit(main())
