"""
Check that the trust-score gateway and the vision model answer a tiny chat completion.
Run: python -m scripts.check_connections (from the repository root, with .env filled in).
"""
import asyncio
import os
import sys

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import openai

from config import settings
from services.llm import get_trust_client, get_vision_client

PING = [{"role": "user", "content": "Say 'Connection successful!' if you can read this."}]


async def _ping(name: str, client, model: str) -> bool:
    if client is None:
        print(f"❌ {name}: API key not configured")
        return False
    try:
        response = await client.chat.completions.create(model=model, messages=PING, max_tokens=50, temperature=0)
    except openai.OpenAIError as e:
        print(f"❌ {name}: {e}")
        return False
    finally:
        await client.close()
    print(f"✅ {name}: {response.choices[0].message.content!r} (model {response.model})")
    return True


async def main() -> bool:
    results = [
        await _ping("Trust-score gateway", get_trust_client(), settings.nilai_model),
        await _ping("Vision model", get_vision_client(), settings.vision_model),
    ]
    return all(results)


if __name__ == "__main__":
    print("=" * 60)
    print("Testing upstream model connections")
    print("=" * 60)
    success = asyncio.run(main())
    print("=" * 60)
    print("✅ All connections OK." if success else "❌ Some connections failed. Check your API keys.")
    print("=" * 60)
    sys.exit(0 if success else 1)
