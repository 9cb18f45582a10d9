from __future__ import annotations

import os
import sys
import argparse
import json as _json
import getpass as _getpass

from typing import List, Optional

from tokenseal.codec import TokenCodec, split_token
from tokenseal.constants import BLOCK_SIZE, NONCE_LEN
from tokenseal.errors import TokenSealError, InvalidTokenError


ENV_ENCRYPT_KEY = "TOKENSEAL_ENCRYPT_KEY"
ENV_VALIDATE_KEY = "TOKENSEAL_VALIDATE_KEY"


def _resolve_key(value: Optional[str], env_name: str, prompt: str) -> str:
    """Pick a secret from the command line, then the environment, then a prompt.

    Args:
        value: Value given on the command line, if any.
        env_name: Environment variable consulted when ``value`` is None.
        prompt: Text for the interactive fallback.
    """
    if value is not None:
        return value
    env_val = os.environ.get(env_name)
    if env_val is not None:
        return env_val
    if not sys.stdin.isatty():
        raise ValueError(f"No key given; pass it as an option or set {env_name}")
    return _getpass.getpass(prompt)


def _read_text(arg: Optional[str]) -> str:
    # Positional value wins; '-' or nothing means stdin.
    if arg is not None and arg != "-":
        return arg
    return sys.stdin.read()


def _build_codec(encrypt_key: Optional[str], validate_key: Optional[str], legacy_digest: bool) -> TokenCodec:
    ek = _resolve_key(encrypt_key, ENV_ENCRYPT_KEY, "Encryption key: ")
    vk = _resolve_key(validate_key, ENV_VALIDATE_KEY, "Validation key: ")
    return TokenCodec(ek, vk, case_insensitive_digest=legacy_digest)


def cmd_seal(
    source: Optional[str],
    *,
    encrypt_key: Optional[str] = None,
    validate_key: Optional[str] = None,
) -> bool:
    """Read a JSON document and print a token for it.

    Args:
        source: Path to a JSON file, or None/'-' for stdin.
        encrypt_key: Encryption secret (falls back to the environment).
        validate_key: Validation secret (falls back to the environment).
    """
    if source is None or source == "-":
        text = sys.stdin.read()
    else:
        with open(source, "r", encoding="utf-8") as fh:
            text = fh.read()
    try:
        value = _json.loads(text)
    except ValueError as exc:
        raise ValueError(f"Input is not valid JSON: {exc}") from exc
    codec = _build_codec(encrypt_key, validate_key, False)
    print(codec.encode(value))
    return True


def cmd_unseal(
    token: Optional[str],
    *,
    encrypt_key: Optional[str] = None,
    validate_key: Optional[str] = None,
    legacy_digest: bool = False,
    compact: bool = False,
) -> bool:
    """Decode a token and print its payload as JSON."""
    codec = _build_codec(encrypt_key, validate_key, legacy_digest)
    value = codec.decode(_read_text(token).strip())
    if compact:
        print(_json.dumps(value, separators=(",", ":"), ensure_ascii=False))
    else:
        print(_json.dumps(value, indent=2, ensure_ascii=False))
    return True


def cmd_verify(
    token: Optional[str],
    *,
    encrypt_key: Optional[str] = None,
    validate_key: Optional[str] = None,
    legacy_digest: bool = False,
) -> bool:
    """Check a token without printing its payload.

    Prints:
        "OK" when the token is authentic, "FAIL" otherwise.
    """
    codec = _build_codec(encrypt_key, validate_key, legacy_digest)
    ok = codec.verify(_read_text(token).strip())
    print("OK" if ok else "FAIL")
    return ok


def cmd_info(token: Optional[str]) -> bool:
    """Show the field layout of a token. No keys are used and nothing is decrypted."""
    parts = split_token(_read_text(token).strip())
    n = len(parts.ciphertext)
    print(f"Digest: {parts.digest}")
    print(f"Nonce: {parts.nonce_crypt.decode('ascii')}")
    print(f"Ciphertext: {n} bytes ({n // BLOCK_SIZE} blocks)")
    if n % BLOCK_SIZE:
        print("Warning: ciphertext is not block aligned; token will not decode", file=sys.stderr)
    else:
        # Envelope is nonce_check + payload + 1..16 bytes of padding.
        lo = max(n - BLOCK_SIZE - NONCE_LEN, 0)
        hi = max(n - 1 - NONCE_LEN, 0)
        print(f"  Payload: {lo}-{hi} bytes")
    return True


def _add_key_options(ap: argparse.ArgumentParser, *, legacy: bool = True) -> None:
    ap.add_argument("--encrypt-key", help=f"Encryption secret (default: ${ENV_ENCRYPT_KEY} or prompt)")
    ap.add_argument("--validate-key", help=f"Validation secret (default: ${ENV_VALIDATE_KEY} or prompt)")
    if not legacy:
        return
    ap.add_argument(
        "--legacy-digest",
        action="store_true",
        help="Compare digests case-insensitively, as older producers of this format do",
    )


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="tokenseal",
        description="Encrypted, signed tokens for JSON values",
        epilog=(
            "Token errors are reported the same way whether the token is malformed or forged."
        ),
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_seal = sub.add_parser("seal", help="Encode a JSON document into a token")
    ap_seal.add_argument("source", nargs="?", help="JSON file (default: stdin)")
    _add_key_options(ap_seal, legacy=False)

    ap_unseal = sub.add_parser("unseal", help="Decode a token and print its JSON payload")
    ap_unseal.add_argument("token", nargs="?", help="Token (default: stdin)")
    ap_unseal.add_argument("--compact", action="store_true", help="Print JSON on one line")
    _add_key_options(ap_unseal)

    ap_verify = sub.add_parser("verify", help="Check a token's authenticity")
    ap_verify.add_argument("token", nargs="?", help="Token (default: stdin)")
    _add_key_options(ap_verify)

    ap_info = sub.add_parser("info", help="Show token layout (no keys needed)")
    ap_info.add_argument("token", nargs="?", help="Token (default: stdin)")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "seal":
            cmd_seal(
                args.source,
                encrypt_key=args.encrypt_key,
                validate_key=args.validate_key,
            )
        elif args.cmd == "unseal":
            cmd_unseal(
                args.token,
                encrypt_key=args.encrypt_key,
                validate_key=args.validate_key,
                legacy_digest=args.legacy_digest,
                compact=args.compact,
            )
        elif args.cmd == "verify":
            ok = cmd_verify(
                args.token,
                encrypt_key=args.encrypt_key,
                validate_key=args.validate_key,
                legacy_digest=args.legacy_digest,
            )
            sys.exit(0 if ok else 1)
        elif args.cmd == "info":
            cmd_info(args.token)
        else:
            raise RuntimeError("Unknown command")
    except InvalidTokenError:
        print("Error: Invalid token", file=sys.stderr)
        sys.exit(2)
    except (TokenSealError, ValueError, OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
