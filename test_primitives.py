from __future__ import annotations

import base64
import hashlib
import unittest
from unittest import mock

from tokenseal import auth, cipher
from tokenseal.constants import ALPHANUM, KEY_MATERIAL_SIZE, KEY_SIZE
from tokenseal.errors import AuthenticationError, EntropyError, MalformedTokenError
from tokenseal.kdf import derive_key, split_key_material
from tokenseal.nonce import is_alnum, random_alnum
from tokenseal.padding import pad, unpad


# `openssl enc -aes-256-cbc -md md5 -nosalt -pass pass:abc -P`
_ABC_KEY = bytes.fromhex("900150983CD24FB0D6963F7D28E17F72EA0B31E1087A22BC5394A6636E6ED34B")
_ABC_IV = bytes.fromhex("2EFFA65AF1C5EB20572E2F9896B90FEB")

# Same, with password "somesecretkey" + nonce "Zx9Qw3Er"
_VEC_KEY = bytes.fromhex("677F6A09985C49C3D9C0D00A4793E46D9B7D5E2E629D96E0301DE33743B27DCA")
_VEC_IV = bytes.fromhex("49A7C9D62D881E303B4C157933BC4882")
# `openssl enc -aes-256-cbc -K <key> -iv <iv>` over b'abcd1234{"foo":"bar"}'
_VEC_CIPHERTEXT = bytes.fromhex("d6f608dcf2f60a842510cda7f2c004a765e0ea16029e8e60d5674ede17b31041")
# `openssl dgst -sha1 -mac HMAC -macopt key:anothersecretstringabcd1234` over b'{"foo":"bar"}'
_VEC_DIGEST = "p4OYKeztQwm59ivV9qhb9adn7PU="


class KeyDerivationTests(unittest.TestCase):
    def test_matches_openssl_bytes_to_key(self):
        self.assertEqual(derive_key(b"abc", KEY_MATERIAL_SIZE), _ABC_KEY + _ABC_IV)
        self.assertEqual(derive_key(b"somesecretkeyZx9Qw3Er", KEY_MATERIAL_SIZE), _VEC_KEY + _VEC_IV)

    def test_first_block_is_plain_md5(self):
        self.assertEqual(derive_key(b"abc", 16), hashlib.md5(b"abc").digest())

    def test_chained_blocks(self):
        pw = b"password"
        d1 = hashlib.md5(pw).digest()
        d2 = hashlib.md5(d1 + pw).digest()
        d3 = hashlib.md5(d2 + pw).digest()
        self.assertEqual(derive_key(pw, 48), d1 + d2 + d3)

    def test_truncation_is_a_prefix(self):
        full = derive_key(b"secret", 48)
        for n in (1, 5, 16, 17, 31, 47):
            self.assertEqual(derive_key(b"secret", n), full[:n])

    def test_empty_password(self):
        self.assertEqual(derive_key(b"", 16), hashlib.md5(b"").digest())

    def test_rejects_non_positive_length(self):
        with self.assertRaises(ValueError):
            derive_key(b"abc", 0)

    def test_split_key_material(self):
        key, iv = split_key_material(_ABC_KEY + _ABC_IV, KEY_SIZE)
        self.assertEqual(key, _ABC_KEY)
        self.assertEqual(iv, _ABC_IV)


class NonceTests(unittest.TestCase):
    def test_length_and_alphabet(self):
        for n in (1, 8, 33):
            v = random_alnum(n)
            self.assertEqual(len(v), n)
            self.assertTrue(is_alnum(v))

    def test_zero_length(self):
        self.assertEqual(random_alnum(0), b"")

    def test_values_vary(self):
        seen = {random_alnum(8) for _ in range(50)}
        self.assertGreater(len(seen), 45)

    def test_symbols_cover_alphabet(self):
        seen = set(b"".join(random_alnum(64) for _ in range(100)))
        self.assertTrue(seen <= set(ALPHANUM))
        self.assertGreater(len(seen), 55)

    def test_base62_expansion(self):
        # Least significant digit comes first.
        with mock.patch("tokenseal.nonce._strong_random.randrange", return_value=1 + 62 * 10 + 62 * 62 * 61):
            self.assertEqual(random_alnum(3), b"1Az")

    def test_entropy_failure(self):
        with mock.patch("tokenseal.nonce._strong_random.randrange", side_effect=OSError("no entropy")):
            with self.assertRaises(EntropyError):
                random_alnum(8)

    def test_is_alnum(self):
        self.assertTrue(is_alnum(b"abcXYZ019"))
        self.assertFalse(is_alnum(b"abc-123"))
        self.assertFalse(is_alnum(b"abc 123"))


class PaddingTests(unittest.TestCase):
    def test_pad_lengths(self):
        for n in range(0, 40):
            data = b"x" * n
            padded = pad(data)
            self.assertEqual(len(padded) % 16, 0)
            k = padded[-1]
            self.assertTrue(1 <= k <= 16)
            self.assertEqual(padded[-k:], bytes([k]) * k)
            self.assertEqual(unpad(padded), data)

    def test_aligned_input_gets_full_block(self):
        padded = pad(b"A" * 16)
        self.assertEqual(len(padded), 32)
        self.assertEqual(padded[16:], bytes([16]) * 16)

    def test_unpad_rejects_zero_length_byte(self):
        with self.assertRaises(MalformedTokenError):
            unpad(b"A" * 15 + b"\x00")

    def test_unpad_rejects_length_byte_above_block_size(self):
        with self.assertRaises(MalformedTokenError):
            unpad(b"A" * 15 + b"\x11")
        with self.assertRaises(MalformedTokenError):
            unpad(b"\xff" * 32)

    def test_unpad_rejects_empty_and_unaligned(self):
        with self.assertRaises(MalformedTokenError):
            unpad(b"")
        with self.assertRaises(MalformedTokenError):
            unpad(b"A" * 14 + b"\x01")

    def test_unpad_rejects_inconsistent_pad_bytes(self):
        with self.assertRaises(MalformedTokenError):
            unpad(b"A" * 14 + b"\x01\x02")


class CipherTests(unittest.TestCase):
    def test_matches_openssl(self):
        plaintext = pad(b'abcd1234{"foo":"bar"}')
        self.assertEqual(cipher.encrypt(_VEC_KEY, _VEC_IV, plaintext), _VEC_CIPHERTEXT)
        self.assertEqual(cipher.decrypt(_VEC_KEY, _VEC_IV, _VEC_CIPHERTEXT), plaintext)

    def test_length_preserved(self):
        data = pad(b"z" * 50)
        self.assertEqual(len(cipher.encrypt(_ABC_KEY, _ABC_IV, data)), len(data))

    def test_encrypt_rejects_bad_inputs(self):
        with self.assertRaises(ValueError):
            cipher.encrypt(_ABC_KEY[:16], _ABC_IV, b"\x00" * 16)
        with self.assertRaises(ValueError):
            cipher.encrypt(_ABC_KEY, _ABC_IV[:8], b"\x00" * 16)
        with self.assertRaises(ValueError):
            cipher.encrypt(_ABC_KEY, _ABC_IV, b"\x00" * 15)

    def test_decrypt_rejects_bad_inputs(self):
        with self.assertRaises(MalformedTokenError):
            cipher.decrypt(_ABC_KEY[:24], _ABC_IV, b"\x00" * 16)
        with self.assertRaises(MalformedTokenError):
            cipher.decrypt(_ABC_KEY, _ABC_IV[:15], b"\x00" * 16)
        with self.assertRaises(MalformedTokenError):
            cipher.decrypt(_ABC_KEY, _ABC_IV, b"")
        with self.assertRaises(MalformedTokenError):
            cipher.decrypt(_ABC_KEY, _ABC_IV, b"\x00" * 17)


class AuthenticatorTests(unittest.TestCase):
    def test_rfc2202_vector(self):
        mac = auth.sign(b"Hi There", b"\x0b" * 20)
        self.assertEqual(mac.hex(), "b617318655057264e28bc0b6fb378c8ef146be00")

    def test_matches_openssl(self):
        key = auth.digest_key(b"anothersecretstring", b"abcd1234")
        mac = auth.sign(b'{"foo":"bar"}', key)
        self.assertEqual(auth.encode_digest(mac), _VEC_DIGEST)
        self.assertEqual(auth.decode_digest(_VEC_DIGEST), mac)

    def test_encoding_is_url_safe(self):
        mac = b"\xfb\xff" + b"\x00" * 18
        text = auth.encode_digest(mac)
        self.assertEqual(len(text), 28)
        self.assertEqual(text, base64.b64encode(mac).decode().replace("+", "-").replace("/", "_"))
        self.assertNotIn("+", text)
        self.assertNotIn("/", text)

    def test_decode_digest_rejects_bad_text(self):
        good = _VEC_DIGEST
        for bad in (
            good[:-1],
            good + "A",
            good[:-1] + "A",
            "+" + good[1:],
            "!" + good[1:],
            " " + good[1:],
            good[:26] + "V=",
            good[:26] + "X=",
        ):
            with self.assertRaises(MalformedTokenError, msg=bad):
                auth.decode_digest(bad)

    def test_verify(self):
        key = auth.digest_key(b"anothersecretstring", b"abcd1234")
        auth.verify(b'{"foo":"bar"}', key, _VEC_DIGEST)
        with self.assertRaises(AuthenticationError):
            auth.verify(b'{"foo":"baz"}', key, _VEC_DIGEST)
        with self.assertRaises(AuthenticationError):
            auth.verify(b'{"foo":"bar"}', auth.digest_key(b"anothersecretstring", b"abcd1235"), _VEC_DIGEST)

    def test_case_insensitive_verify(self):
        key = auth.digest_key(b"anothersecretstring", b"abcd1234")
        swapped = _VEC_DIGEST.swapcase()
        auth.verify(b'{"foo":"bar"}', key, swapped, case_insensitive=True)
        with self.assertRaises(AuthenticationError):
            auth.verify(b'{"foo":"bar"}', key, swapped)


if __name__ == "__main__":
    unittest.main()
