#!/usr/bin/env python3
"""
readaloud — Import EPUB/PDF documents, render EPUBs as one scrollable page,
and narrate them with ElevenLabs TTS.

Quick start:
  1. Add ELEVENLABS_API_KEY to .env
  2. python readaloud.py import "The Inimitable Jeeves.epub"
     python readaloud.py list
  3. python readaloud.py render "The Inimitable Jeeves.epub" --output jeeves.html
  4. python readaloud.py chunks "The Inimitable Jeeves.epub"
  5. python readaloud.py speak "The Inimitable Jeeves.epub" --output-dir narration/
"""

import argparse
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from config import Settings, load_settings
from errors import DocumentImportError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import, render and narrate EPUB documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Copy a document into local storage:
  python readaloud.py import ~/Downloads/book.epub

  # Write the merged reading page:
  python readaloud.py render book.epub --output book.html

  # Dry run: list speech chunks, no API calls:
  python readaloud.py chunks book.epub --max-chars 1000

  # Narrate to MP3 files:
  python readaloud.py speak book.epub --output-dir narration/

  # Show or set the saved scroll position:
  python readaloud.py position book.epub --set 1200
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--env-file", type=Path, default=None, metavar="FILE", help="Read settings from this .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Copy a PDF/EPUB into local storage")
    p_import.add_argument("input_path", type=Path)
    p_import.add_argument("--storage-dir", type=Path, default=None, metavar="DIR",
                          help="Destination directory (default: <data dir>/documents)")

    p_list = sub.add_parser("list", help="List documents in local storage")
    p_list.add_argument("--storage-dir", type=Path, default=None, metavar="DIR",
                        help="Storage directory (default: <data dir>/documents)")

    p_render = sub.add_parser("render", help="Merge EPUB chapters into one HTML page")
    p_render.add_argument("input_path", type=Path)
    p_render.add_argument("--output", type=Path, default=None, metavar="PATH",
                          help="Output file (default: print to stdout)")

    p_chunks = sub.add_parser("chunks", help="List the speech chunks of an EPUB (no API calls)")
    p_chunks.add_argument("input_path", type=Path)
    p_chunks.add_argument("--max-chars", type=int, default=None, metavar="N",
                          help="Maximum characters per chunk (default: READALOUD_MAX_CHUNK_LENGTH)")

    p_speak = sub.add_parser("speak", help="Narrate an EPUB to MP3 files with ElevenLabs")
    p_speak.add_argument("input_path", type=Path)
    p_speak.add_argument("--output-dir", type=Path, default=Path("narration"), metavar="DIR")
    p_speak.add_argument("--voice-id", type=str, default=None, metavar="ID")
    p_speak.add_argument(
        "--model",
        choices=["eleven_multilingual_v2", "eleven_turbo_v2_5", "eleven_monolingual_v1"],
        default=None,
        help="ElevenLabs TTS model (default: READALOUD_TTS_MODEL or eleven_turbo_v2_5)",
    )

    p_position = sub.add_parser("position", help="Show or set the saved scroll position")
    p_position.add_argument("input_path", type=Path)
    p_position.add_argument("--set", type=int, default=None, dest="offset", metavar="PIXELS")

    return parser.parse_args(argv)


def cmd_import(args: argparse.Namespace, settings: Settings) -> int:
    from importer import DocumentImporter, LocalFilePicker

    importer = DocumentImporter(args.storage_dir or settings.documents_dir)
    outcome = LocalFilePicker().pick(args.input_path)
    document = importer.import_outcome(outcome)
    print(f"Name:  {document.display_name}")
    print(f"Size:  {document.size_bytes / 1024:.2f} KB")
    print(f"Type:  {document.mime_type}")
    print(f"Path:  {document.local_path}")
    return 0


def cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    from importer import DocumentImporter

    documents = DocumentImporter(args.storage_dir or settings.documents_dir).list_documents()
    if not documents:
        print("No documents imported yet.")
        return 0
    print(f"\nFound {len(documents)} documents:")
    print("-" * 70)
    for document in documents:
        kind = {"application/pdf": "PDF", "application/epub+zip": "EPUB"}.get(document.mime_type, "?")
        print(f"  {document.display_name:<50} {kind:<5} {document.size_bytes / 1024:>9.2f} KB")
    print("-" * 70)
    return 0


def cmd_render(args: argparse.Namespace, settings: Settings) -> int:
    from parsers import render_epub

    rendered = render_epub(args.input_path)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rendered.html, encoding="utf-8")
        print(f"Wrote {args.output} ({rendered.fragment_count} content documents)")
    else:
        sys.stdout.write(rendered.html + "\n")
    return 1 if rendered.error else 0


def print_chunk_list(chunks) -> None:
    print(f"\nFound {len(chunks)} chunks:")
    print("-" * 70)
    total_chars = 0
    for chunk in chunks:
        total_chars += len(chunk.text)
        preview = chunk.text[:40].replace("\n", " ")
        print(f"  {chunk.index:3d}. {preview:<42} {len(chunk.text):>7} chars")
    print("-" * 70)
    print(f"  Total: {total_chars:,} chars")
    print()


def _chunks_for(input_path: Path, max_chars: int):
    from parsers import readable_text, render_epub
    from tts_engine import split_into_speech_chunks

    rendered = render_epub(input_path)
    if rendered.placeholder:
        print(f"ERROR: {rendered.error or 'No content found'}")
        return None
    return split_into_speech_chunks(readable_text(rendered.html), max_chars)


def cmd_chunks(args: argparse.Namespace, settings: Settings) -> int:
    chunks = _chunks_for(args.input_path, args.max_chars or settings.max_chunk_length)
    if chunks is None:
        return 1
    print_chunk_list(chunks)
    print("Dry run complete. No API calls made.")
    return 0


class _ProgressListener:
    """Forwards engine callbacks to the controller and ticks a progress bar."""

    def __init__(self, controller, pbar):
        self.controller = controller
        self.pbar = pbar

    def on_start(self, utterance_id: str) -> None:
        self.controller.on_start(utterance_id)

    def on_done(self, utterance_id: str) -> None:
        self.controller.on_done(utterance_id)
        self.pbar.update(1)

    def on_error(self, utterance_id: str) -> None:
        self.controller.on_error(utterance_id)
        self.pbar.update(1)


def cmd_speak(args: argparse.Namespace, settings: Settings) -> int:
    if not settings.api_key:
        print("ERROR: ELEVENLABS_API_KEY not set.")
        print("Add it to .env:  ELEVENLABS_API_KEY=your_key_here")
        return 1

    chunks = _chunks_for(args.input_path, settings.max_chunk_length)
    if chunks is None:
        return 1
    if not chunks:
        print("Nothing to read.")
        return 0

    from elevenlabs import ElevenLabs

    from narration import NarrationController
    from tts_engine import ElevenLabsEngine

    voice_id = args.voice_id or settings.voice_id
    model = args.model or settings.tts_model
    print(f"Voice ID: {voice_id}")
    print(f"Model: {model}")
    print(f"Output: {args.output_dir}")
    print()

    engine = ElevenLabsEngine(
        ElevenLabs(api_key=settings.api_key),
        voice_id=voice_id,
        model_id=model,
        output_dir=args.output_dir,
        rate=settings.speech_rate,
    )
    controller = NarrationController(engine)
    with tqdm(total=len(chunks), desc="  Narrating", unit="chunk") as pbar:
        engine.set_listener(_ProgressListener(controller, pbar))
        controller.start(chunks)
        engine.wait()
    engine.shutdown()

    if controller.errors:
        print(f"\n{len(controller.errors)} chunks failed: {', '.join(controller.errors)}")
        return 1
    print(f"\nDone! {len(chunks)} files saved to: {args.output_dir}")
    return 0


def cmd_position(args: argparse.Namespace, settings: Settings) -> int:
    from checkpoints import JsonKeyValueStore, ScrollCheckpointStore, document_key

    store = ScrollCheckpointStore(JsonKeyValueStore(settings.checkpoints_path))
    key = document_key(args.input_path.resolve())
    if args.offset is not None:
        store.save(key, args.offset)
    print(f"{key}: {store.load(key)}")
    return 0


COMMANDS = {
    "import": cmd_import,
    "list": cmd_list,
    "render": cmd_render,
    "chunks": cmd_chunks,
    "speak": cmd_speak,
    "position": cmd_position,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.env_file)
        return COMMANDS[args.command](args, settings)
    except DocumentImportError as e:
        if e.is_cancellation:
            print("Import cancelled.")
            return 0
        print(f"ERROR: {e}")
        return 1
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
