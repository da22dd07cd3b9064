"""CLI entry point for Steer Chat SDK."""

import argparse
import asyncio
import sys
from typing import Optional

from .api.client import ChatClient
from .models.chat import ChatCompletionOptions


def _options(client: ChatClient, model: Optional[str], max_tokens: Optional[int],
             temperature: Optional[float]) -> ChatCompletionOptions:
    # an empty model falls back to the configured default
    return ChatCompletionOptions(
        model=model or client.settings.model or "",
        max_tokens=max_tokens,
        temperature=temperature,
    )


async def chat(prompt: str, model: Optional[str] = None, max_tokens: Optional[int] = None,
               temperature: Optional[float] = None, stream: bool = False) -> int:
    """Send one prompt and print the answer. Returns the exit status."""
    async with ChatClient() as client:
        try:
            options = _options(client, model, max_tokens, temperature)
            if stream:
                async with client.complete_chat_streaming_async(prompt, options) as updates:
                    async for update in updates:
                        print(update.text, end='', flush=True)
                    print()
                summary = updates.scope.summary
                if summary is not None and summary.usage is not None:
                    print(f"\nTokens used: {summary.usage.total_tokens}")
            else:
                completion = await client.complete_chat_async(prompt, options)
                print(completion.text or "")
                if completion.usage is not None:
                    print(f"\nTokens used: {completion.usage.total_tokens}")
        except Exception as e:
            print(f"Error: {str(e)}")
            return 1
    return 0


async def embed(text: str, model: Optional[str] = None) -> int:
    """Print the size of the embedding of one input. Returns the exit status."""
    async with ChatClient() as client:
        try:
            result = await client.generate_embeddings_async(text, model=model)
            for item in result.data:
                print(f"Embedding {item.index}: {len(item.embedding)} values")
            if result.usage is not None:
                print(f"\nTokens used: {result.usage.total_tokens}")
        except Exception as e:
            print(f"Error: {str(e)}")
            return 1
    return 0


def main():
    """Main CLI function."""
    parser = argparse.ArgumentParser(description="Steer Chat SDK CLI")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    chat_parser = subparsers.add_parser('chat', help='Send a prompt to the chat-completion service')
    chat_parser.add_argument('prompt', help='Text prompt')
    chat_parser.add_argument('--model', help='Model name (defaults to STEER_CHAT_MODEL)')
    chat_parser.add_argument('--max-tokens', type=int, help='Maximum tokens to generate')
    chat_parser.add_argument('--temperature', type=float, help='Temperature (0.0-2.0)')
    chat_parser.add_argument('--stream', action='store_true', help='Stream the response')

    embed_parser = subparsers.add_parser('embed', help='Create an embedding for a text')
    embed_parser.add_argument('text', help='Input text')
    embed_parser.add_argument('--model', help='Embedding model name (defaults to STEER_CHAT_MODEL)')

    args = parser.parse_args()

    if args.command == 'chat':
        sys.exit(asyncio.run(chat(
            args.prompt,
            args.model,
            args.max_tokens,
            args.temperature,
            args.stream
        )))
    elif args.command == 'embed':
        sys.exit(asyncio.run(embed(args.text, args.model)))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
