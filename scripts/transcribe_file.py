#!/usr/bin/env python3
"""Transcribe a WAV file through a running speech orchestrator."""

import argparse
import asyncio
import json
import sys
import time

import httpx

from speech_orchestrator.client import DEFAULT_BASE_URL, ASRClient


async def transcribe_file(args: argparse.Namespace) -> int:
    client = ASRClient(base_url=args.url)
    try:
        if args.model:
            print(f"Loading model {args.model}...", file=sys.stderr)
            await client.init_model(
                args.model,
                lang=args.lang,
                grammar=args.grammar,
                grammar_rule=args.grammar_rule,
            )

        overrides = {}
        if args.beam_size is not None:
            overrides["beam_size"] = args.beam_size

        print(f"Transcribing {args.audio}...", file=sys.stderr)
        start = time.time()
        result = await client.transcribe(
            args.audio, lang=args.lang, diarize=args.diarize, **overrides
        )
        elapsed = time.time() - start
    except httpx.HTTPStatusError as e:
        print(f"Error: {e.response.status_code}", file=sys.stderr)
        print(e.response.text, file=sys.stderr)
        return 1
    finally:
        await client.close()

    print(
        f"Transcription completed in {elapsed:.2f}s "
        f"(server reported: {result['processing_time']:.2f}s)",
        file=sys.stderr,
    )
    if args.json:
        print(json.dumps(result, indent=2))
        return 0

    for segment in result["segments"]:
        speaker = f"(speaker {segment['speaker']}) " if segment.get("speaker") else ""
        print(f"[{segment['start']:7.2f} --> {segment['end']:7.2f}] {speaker}{segment['text']}")
    for warning in result["warnings"]:
        print(f"warning: {warning}", file=sys.stderr)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("audio", help="16 kHz mono or stereo WAV file")
    parser.add_argument("--url", default=DEFAULT_BASE_URL, help="Service base URL")
    parser.add_argument("--lang", default="en", help="Language code or 'auto'")
    parser.add_argument("--model", help="Load this model before transcribing")
    parser.add_argument("--grammar", help="GBNF grammar text or server-side path (with --model)")
    parser.add_argument("--grammar-rule", help="Grammar start rule (with --model)")
    parser.add_argument("--beam-size", type=int, help="Beam size override")
    parser.add_argument("--diarize", action="store_true", help="Label speakers (stereo input)")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON response")
    return asyncio.run(transcribe_file(parser.parse_args()))


if __name__ == "__main__":
    sys.exit(main())
