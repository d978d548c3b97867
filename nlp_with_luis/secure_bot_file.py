"""
Encrypt the secrets of a .bot file.

Writes the encrypted file in place and prints the secret to put in the
botFileSecret setting. Pass --secret to reuse an existing key.
"""

import argparse
import json
import sys
from pathlib import Path

from nlp_with_luis.config.bot_configuration import BotConfiguration, BotConfigurationError, generate_key


def secure_bot_file(path: Path, secret: str) -> None:
    config = BotConfiguration.load(path)
    if config.padlock:
        raise BotConfigurationError(f"{path} is already encrypted")

    config.encrypt(secret)
    path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("bot_file", nargs="?", default="nlp-with-luis.bot")
    parser.add_argument("--secret", help="base64 encoded 256 bit key, generated when omitted")
    args = parser.parse_args()

    secret = args.secret or generate_key()
    try:
        secure_bot_file(Path(args.bot_file), secret)
    except BotConfigurationError as e:
        print(f"❌ {e}")
        return 1

    print(f"✅ Encrypted {args.bot_file}")
    print(f"🔑 botFileSecret: {secret}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
