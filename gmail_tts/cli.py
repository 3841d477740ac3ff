"""CLI interface with subcommand routing."""

import argparse
import logging
import os
import sys

from gmail_tts.config import Config, load_config
from gmail_tts.constants import PROMPT_PATH, RUN_TIMEOUT, VERSION
from gmail_tts.drive import DriveUploader
from gmail_tts.errors import GmailTTSError, ValidationError
from gmail_tts.exporter import write_manifest
from gmail_tts.gmail import GmailMessageSource
from gmail_tts.google_services import build_drive_service, build_gmail_service, load_credentials
from gmail_tts.ledger import Ledger
from gmail_tts.models import RunRequest
from gmail_tts.pipeline import Services, process_if_new, run_message
from gmail_tts.rewrite import OpenAIRewriter, load_prompt, rewrite_text_file, synthesize_part_files
from gmail_tts.storage import FileStore, save_message_text
from gmail_tts.tts import build_synthesizer

logger = logging.getLogger(__name__)


def _message_source(config: Config) -> GmailMessageSource:
    credentials = load_credentials(config.gmail_token)
    return GmailMessageSource(build_gmail_service(credentials))


def _synthesizer(config: Config):
    return build_synthesizer(config.tts_provider, api_key=config.openai_api_key, voice=config.tts_voice)


def _upload(config: Config, path: str):
    """Upload the merged file to Drive. Failure is reported, not raised."""
    try:
        service = build_drive_service(load_credentials(config.gmail_token))
        created = DriveUploader(service, config.drive_folder_id).upload(path)
    except GmailTTSError as e:
        logger.error("Drive upload failed: %s", e)
        print(f"Warning: Drive upload failed: {e}", file=sys.stderr)
        return
    print(f"Uploaded to Drive: {created.get('webViewLink') or created.get('id')}")


def cmd_run(args):
    """Synthesize one message, skipping it if the ledger already has it."""
    config = load_config()
    source = _message_source(config)
    services = Services(source=source, synthesizer=_synthesizer(config), store=FileStore(config.audio_dir))
    ledger = Ledger(config.ledger_path)

    message_id = args.message_id
    if not message_id:
        query = args.query if args.query is not None else config.gmail_query
        if query:
            print(f"Applying query: {query}")
        try:
            message_id = source.latest_id(query)
        except GmailTTSError as e:
            raise e.at_stage("fetch")
        print(f"Latest message: {message_id}")

    request = RunRequest(message_id=message_id, limit_chars=args.limit)
    run_kwargs = {"timeout": config.tts_chunk_timeout, "run_timeout": RUN_TIMEOUT}
    if args.force:
        result = run_message(services, request, **run_kwargs)
        if not ledger.contains(result.message_id):
            ledger.append(result.message_id)
    else:
        result = process_if_new(services, ledger, request, **run_kwargs)

    if result.skipped:
        print(f"Message {result.message_id} already processed. Use --force to redo it.")
        return

    title = os.path.splitext(os.path.basename(result.merged_path))[0]
    write_manifest(
        result,
        subject=title,
        settings={"provider": config.tts_provider, "voice": config.tts_voice, "limit_chars": args.limit},
    )
    print(f"Saved {result.chunk_count} chunks → {result.merged_path} ({len(result.audio)} bytes)")

    if config.drive_upload_enabled:
        _upload(config, result.merged_path)


def cmd_save_text(args):
    """Save a message body as a raw text file."""
    config = load_config()
    source = _message_source(config)
    message_id = args.message_id
    if not message_id:
        query = args.query if args.query is not None else config.gmail_query
        message_id = source.latest_id(query)
    message = source.get_by_id(message_id)
    if not message.body.strip():
        raise ValidationError(f"Message {message_id} has no readable text")
    path = save_message_text(message, config.text_dir)
    print(f"Saved text → {path}")


def cmd_rewrite(args):
    """Rewrite a saved text file into podcast part files."""
    if not os.path.exists(args.file):
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        raise SystemExit(1)
    config = load_config()
    rewriter = OpenAIRewriter(api_key=config.openai_api_key)
    paths = rewrite_text_file(args.file, rewriter, load_prompt(args.prompt), text_dir=config.text_dir)
    print(f"Wrote {len(paths)} part files:")
    for path in paths:
        print(f"  {path}")


def cmd_speak_parts(args):
    """Synthesize the rewritten part files of one message."""
    config = load_config()
    merged = synthesize_part_files(
        args.message_id,
        _synthesizer(config),
        FileStore(config.audio_dir),
        text_dir=config.text_dir,
        timeout=config.tts_chunk_timeout,
    )
    print(f"Saved {merged.chunk_count} parts → {merged.path} ({len(merged.data)} bytes)")


def cmd_ledger(args):
    """List processed message ids."""
    ids = Ledger(load_config().ledger_path).ids()
    if not ids:
        print("No processed messages.")
        return
    print("Processed messages:")
    for message_id in ids:
        print(f"  {message_id}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="gmail-tts",
        description="Gmail TTS: turn an email into an MP3",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run
    run_parser = subparsers.add_parser("run", help="Synthesize one message (latest by default)")
    run_parser.add_argument("--message-id", help="Gmail message id")
    run_parser.add_argument("--query", help="Gmail search query for the latest message")
    run_parser.add_argument("--limit", type=int, default=None, help="Only speak the first N characters")
    run_parser.add_argument("--force", action="store_true", help="Ignore the processed-id ledger")
    run_parser.set_defaults(func=cmd_run)

    # save-text
    save_parser = subparsers.add_parser("save-text", help="Save a message body as text")
    save_parser.add_argument("--message-id", help="Gmail message id")
    save_parser.add_argument("--query", help="Gmail search query for the latest message")
    save_parser.set_defaults(func=cmd_save_text)

    # rewrite
    rewrite_parser = subparsers.add_parser("rewrite", help="Rewrite a text file into podcast parts")
    rewrite_parser.add_argument("file", help="Saved raw text file")
    rewrite_parser.add_argument("--prompt", default=PROMPT_PATH, help="Prompt file")
    rewrite_parser.set_defaults(func=cmd_rewrite)

    # speak-parts
    speak_parser = subparsers.add_parser("speak-parts", help="Synthesize rewritten part files")
    speak_parser.add_argument("message_id", help="Gmail message id")
    speak_parser.set_defaults(func=cmd_speak_parts)

    # ledger
    ledger_parser = subparsers.add_parser("ledger", help="List processed message ids")
    ledger_parser.set_defaults(func=cmd_ledger)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except GmailTTSError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
