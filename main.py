import argparse
import asyncio

from plotpilot.core.context import build_context
from plotpilot.transport import chat_with_assistant


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="main.py", description="Chat with the PlotPilot assistant")
    parser.add_argument("message", nargs="*", help="Message to send; omit for an interactive session")
    return parser


async def run(args: argparse.Namespace) -> int:
    ctx = build_context()

    if args.message:
        reply = await chat_with_assistant({"userMessage": " ".join(args.message)}, ctx=ctx)
        print(reply.assistant_response)
        return 0

    while True:
        try:
            text = input("you> ").strip()
        except EOFError:
            return 0
        if text.lower() in ("exit", "quit"):
            return 0
        if not text:
            continue
        reply = await chat_with_assistant({"userMessage": text}, ctx=ctx)
        print(f"plotpilot> {reply.assistant_response}")


def main() -> int:
    args = build_parser().parse_args()
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
