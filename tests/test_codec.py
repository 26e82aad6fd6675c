"""Unit tests for the compact JWT codec."""
import hashlib
import hmac
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ.setdefault("DATABASE_URL", ":memory:")

import jwt

from jwt_workbench.errors import AlgorithmUnsupported, InvalidTokenFormat
from jwt_workbench.models.token import Algorithm, UnsupportedAlgorithm, parse_algorithm
from jwt_workbench.services import codec

JWT_IO_TOKEN = (
    "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9"
    ".eyJzdWIiOiIxMjM0NTY3ODkwIiwibmFtZSI6IkpvaG4gRG9lIiwiaWF0IjoxNTE2MjM5MDIyfQ"
    ".SflKxwRJSMeKKF2QT4fwpMeJf36POk6yJV_adQssw5c"
)
JWT_IO_SECRET = "your-256-bit-secret"
# Long enough for every HMAC digest size
LONG_SECRET = "k" * 64

_H, _P, _S = JWT_IO_TOKEN.split(".")

MALFORMED = [
    "",
    "abc",
    "a.b",
    "a.b.c.d",
    "a..c",
    ".b.c",
    "a.b.",
    "a b.c.d",
    # Trailing newline inside a segment is outside the Base64URL alphabet
    f"{_H}\n.{_P}.{_S}",
    f"{_H}.{_P}.{_S}\n",
]


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------

class TestEncode(unittest.TestCase):
    def test_jwt_io_vector(self):
        header = {"alg": "HS256", "typ": "JWT"}
        payload = {"sub": "1234567890", "name": "John Doe", "iat": 1516239022}
        self.assertEqual(codec.encode(header, payload, JWT_IO_SECRET), JWT_IO_TOKEN)
        self.assertTrue(codec.verify(JWT_IO_TOKEN, JWT_IO_SECRET))

    def test_unsupported_algorithm_raises(self):
        for alg in ["RS256", "none", "hs256", None, 256]:
            with self.assertRaises(AlgorithmUnsupported):
                codec.encode({"alg": alg}, {"sub": "x"}, LONG_SECRET)

    def test_missing_alg_is_unsupported(self):
        with self.assertRaises(AlgorithmUnsupported):
            codec.encode({"typ": "JWT"}, {}, LONG_SECRET)

    def test_unicode_claims_survive(self):
        payload = {"name": "Zoë Łukasz", "city": "東京"}
        token = codec.encode({"alg": "HS256"}, payload, LONG_SECRET)
        self.assertEqual(codec.decode(token)[1], payload)

    def test_segments_are_unpadded_base64url(self):
        token = codec.encode({"alg": "HS512", "typ": "JWT"}, {"sub": "?>?>"}, LONG_SECRET)
        self.assertNotIn("=", token)
        self.assertNotIn("+", token)
        self.assertNotIn("/", token)
        self.assertEqual(len(token.split(".")), 3)

    def test_readable_by_pyjwt(self):
        payload = {"sub": "abc", "iat": 1516239022, "exp": 1516239022 + 60}
        for alg in Algorithm:
            token = codec.encode({"alg": alg.value, "typ": "JWT"}, payload, LONG_SECRET)
            decoded = jwt.decode(
                token, LONG_SECRET, algorithms=[alg.value], options={"verify_exp": False}
            )
            self.assertEqual(decoded, payload)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------

class TestDecode(unittest.TestCase):
    def test_roundtrip_all_algorithms(self):
        payload = {"iss": "workbench", "sub": "42", "aud": ["a", "b"], "custom": {"x": 1}}
        for alg in Algorithm:
            header = {"alg": alg.value, "typ": "JWT", "kid": "key-1", "extra": True}
            token = codec.encode(header, payload, "secret")
            self.assertEqual(codec.decode(token), (header, payload))

    def test_malformed_tokens(self):
        for token in MALFORMED:
            with self.assertRaises(InvalidTokenFormat, msg=token):
                codec.decode(token)

    def test_header_must_be_object(self):
        array_segment = codec.b64url_encode(b"[1,2]")
        with self.assertRaises(InvalidTokenFormat):
            codec.decode(f"{array_segment}.{array_segment}.c2ln")

    def test_signature_segment_is_not_decoded(self):
        header, payload, _ = JWT_IO_TOKEN.split(".")
        decoded = codec.decode(f"{header}.{payload}.x")
        self.assertEqual(decoded[0], {"alg": "HS256", "typ": "JWT"})

    def test_does_not_depend_on_secret(self):
        token = codec.encode({"alg": "HS384"}, {"sub": "x"}, "one")
        other = codec.encode({"alg": "HS384"}, {"sub": "x"}, "two")
        self.assertEqual(codec.decode(token), codec.decode(other))


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------

class TestVerify(unittest.TestCase):
    def test_wrong_secret(self):
        for alg in Algorithm:
            token = codec.encode({"alg": alg.value}, {"sub": "x"}, "right")
            self.assertTrue(codec.verify(token, "right"))
            self.assertFalse(codec.verify(token, "wrong"))

    def test_expired_token_still_verifies(self):
        payload = {"sub": "x", "exp": 1, "nbf": 4102444800, "iat": 4102444800}
        token = codec.encode({"alg": "HS256"}, payload, "secret")
        self.assertTrue(codec.verify(token, "secret"))

    def test_malformed_tokens(self):
        for token in MALFORMED:
            with self.assertRaises(InvalidTokenFormat, msg=token):
                codec.verify(token, "secret")

    def test_tampered_payload(self):
        token = codec.encode({"alg": "HS256"}, {"admin": False}, "secret")
        header, _, signature = token.split(".")
        forged = codec.b64url_encode(b'{"admin":true}')
        self.assertFalse(codec.verify(f"{header}.{forged}.{signature}", "secret"))

    def test_unsupported_alg_is_not_verified(self):
        header = codec.b64url_encode(b'{"alg":"RS256"}')
        payload = codec.b64url_encode(b"{}")
        self.assertFalse(codec.verify(f"{header}.{payload}.c2ln", "secret"))

    def test_uses_literal_segments(self):
        # Whitespace in the JSON would be lost by a decode/re-encode cycle.
        header = codec.b64url_encode(b'{ "alg" : "HS256" }')
        payload = codec.b64url_encode(b'{"sub": "x",  "n": 1}')
        mac = hmac.new(b"secret", f"{header}.{payload}".encode(), hashlib.sha256).digest()
        token = f"{header}.{payload}.{codec.b64url_encode(mac)}"
        self.assertTrue(codec.verify(token, "secret"))
        self.assertFalse(codec.verify(token, "other"))

    def test_pyjwt_issued_token(self):
        token = jwt.encode(
            {"sub": "x"}, LONG_SECRET, algorithm="HS256", headers={"kid": "key-1"}
        )
        self.assertTrue(codec.verify(token, LONG_SECRET))
        self.assertEqual(codec.decode(token)[0]["kid"], "key-1")

    def test_bytes_secret(self):
        token = codec.encode({"alg": "HS256"}, {}, "pässword")
        self.assertTrue(codec.verify(token, "pässword".encode("utf-8")))


class TestAlgorithmVariant(unittest.TestCase):
    def test_closed_set(self):
        self.assertIs(parse_algorithm("HS384"), Algorithm.HS384)
        self.assertEqual(parse_algorithm("ES256"), UnsupportedAlgorithm("ES256"))
        self.assertEqual(parse_algorithm(None), UnsupportedAlgorithm("None"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
