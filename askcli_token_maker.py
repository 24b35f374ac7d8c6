#!/usr/bin/env python3
########################################################################
# Copyright (C) 2026  Kevin M. Hubbard BlackMesaLabs
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# Site helper for askcli: turns a real API key into a per-user
# ASKCLI_TOKEN blob that askcli decrypts with $ASKCLI_DIR/site_key.txt
# 2026.03.02 : Created
# 2026.03.23 : decrypt_token lives here now, askcli imports it
########################################################################
import os
import hmac
import hashlib
import itertools
import sys


class token_maker_error(Exception):
    pass


def load_site_secret_key(askcli_dir):
    """Load the site secret key from $ASKCLI_DIR/site_key.txt."""
    key_path = os.path.join(askcli_dir, "site_key.txt")
    try:
        with open(key_path, "r") as f:
            key = f.read().strip()
    except FileNotFoundError:
        raise token_maker_error(f"site_key.txt not found in {askcli_dir}")
    except OSError as e:
        raise token_maker_error(f"reading site_key.txt: {e}")
    if not key:
        raise token_maker_error("site_key.txt is empty.")
    return key


def xor_bytes(data, key):
    return bytes(a ^ b for a, b in zip(data, itertools.cycle(key)))


def sign_payload(key_bytes, payload):
    return hmac.new(key_bytes, payload.encode(), hashlib.sha256).hexdigest()


def generate_encrypted_api_key(secret_key, username, api_key):
    """Blob for ASKCLI_TOKEN: username|xor-cipher-hex|hmac-sha256."""
    key_bytes = secret_key.encode()
    cipher_hex = xor_bytes(api_key.encode(), key_bytes).hex()
    payload = f"{username}|{cipher_hex}"
    return f"{payload}|{sign_payload(key_bytes, payload)}"


def decrypt_token(secret_key, token):
    """
    Inverse of generate_encrypted_api_key. Returns (username, api_key), or
    (None, None) for a malformed token or one signed with another key.
    """
    parts = token.split("|")
    if len(parts) != 3:
        return None, None
    username, cipher_hex, sig = parts
    key_bytes = secret_key.encode()
    expected = sign_payload(key_bytes, f"{username}|{cipher_hex}")
    if not hmac.compare_digest(expected.encode(), sig.encode()):
        return None, None
    try:
        api_key = xor_bytes(bytes.fromhex(cipher_hex), key_bytes).decode()
    except ValueError:
        return None, None
    return username, api_key


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if len(argv) != 2:
        print("Usage: askcli_token_maker.py <username> <REAL_API_KEY>")
        return 1

    username, real_api_key = argv

    askcli_dir = os.environ.get("ASKCLI_DIR")
    if not askcli_dir:
        print("Error: ASKCLI_DIR environment variable is not set.")
        return 1

    try:
        site_secret_key = load_site_secret_key(askcli_dir)
    except token_maker_error as e:
        print(f"Error: {e}")
        return 1
    blob = generate_encrypted_api_key(site_secret_key, username, real_api_key)

    print("\nEncrypted API key blob for user:", username)
    print("--------------------------------------------")
    print(blob)
    print("--------------------------------------------")
    print("Place this blob into the user's ASKCLI_TOKEN environment variable.\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
