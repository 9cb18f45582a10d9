# Token layout: digest || nonce_crypt || cipher_hex
DIGEST_SIZE = 20                # HMAC-SHA1 output
DIGEST_TEXT_LEN = 28            # base64 of 20 bytes, one '=' pad kept
NONCE_LEN = 8                   # nonce_crypt and nonce_check
MIN_TOKEN_LEN = DIGEST_TEXT_LEN + NONCE_LEN

NONCE_CRYPT_START = DIGEST_TEXT_LEN
CIPHER_HEX_START = DIGEST_TEXT_LEN + NONCE_LEN

# Derived key material: AES-256 key followed by the CBC IV
KEY_SIZE = 32
IV_SIZE = 16
KEY_MATERIAL_SIZE = KEY_SIZE + IV_SIZE

BLOCK_SIZE = 16

ALPHANUM = b"0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
