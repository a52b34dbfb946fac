from __future__ import annotations

import unittest

from tuneefy.signer import sign, verify


class TestSigner(unittest.TestCase):
    def setUp(self):
        self.secret = "s3cret"
        self.data = b'{"artist":"Artist X","title":"Song A","type":"track"}'

    def test_sign_is_deterministic_and_keyed(self):
        self.assertEqual(sign(self.data, self.secret), sign(self.data, self.secret))
        self.assertNotEqual(sign(self.data, self.secret), sign(self.data, "other"))
        self.assertEqual(sign(self.data, self.secret), sign(self.data, self.secret.encode()))

    def test_verify_accepts_own_tag(self):
        for data in (b"", b"\x00\xff", self.data):
            self.assertTrue(verify(data, sign(data, self.secret), self.secret))

    def test_flipping_a_data_bit_breaks_verification(self):
        tag = sign(self.data, self.secret)
        for position in (0, len(self.data) // 2, len(self.data) - 1):
            tampered = bytearray(self.data)
            tampered[position] ^= 0x01
            self.assertFalse(verify(bytes(tampered), tag, self.secret))

    def test_flipping_a_tag_bit_breaks_verification(self):
        tag = bytearray(sign(self.data, self.secret).encode("ascii"))
        tag[3] ^= 0x01
        self.assertFalse(verify(self.data, bytes(tag), self.secret))

    def test_wrong_secret_fails(self):
        self.assertFalse(verify(self.data, sign(self.data, self.secret), "not-the-secret"))

    def test_malformed_tags_never_verify(self):
        for tag in (None, 42, "", "é" * 64, sign(self.data, self.secret)[:-1]):
            self.assertFalse(verify(self.data, tag, self.secret))


if __name__ == "__main__":
    unittest.main()
