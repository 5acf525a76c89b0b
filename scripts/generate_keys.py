#!/usr/bin/env python3
"""Generate an Ed25519 key pair for signing interactions against a local server."""

import nacl.encoding
import nacl.signing

signing_key = nacl.signing.SigningKey.generate()
verify_key = signing_key.verify_key

print("Add these to your .env.local file (local testing only):")
print(f"DISCORD_PUBLIC_KEY={verify_key.encode(encoder=nacl.encoding.HexEncoder).decode('utf-8')}")
print(f"DISCORD_PRIVATE_KEY={signing_key.encode(encoder=nacl.encoding.HexEncoder).decode('utf-8')}")
