"""
Test hash based group assignment.

Run with: python3 -m pytest tests/test_hash_service.py
"""

import hashlib
import unittest

from hash_service import (
    UnsupportedHashAlgorithmError, assign_machine, assigned_group, compute_digest, resolve_algorithm,
)

HEX_DIGITS = set("0123456789ABCDEF")


class TestResolveAlgorithm(unittest.TestCase):

    def test_default_is_sha256(self):
        self.assertEqual(resolve_algorithm(), "sha256")

    def test_case_and_dash_insensitive(self):
        self.assertEqual(resolve_algorithm("sha512"), "sha512")
        self.assertEqual(resolve_algorithm("SHA-1"), "sha1")
        self.assertEqual(resolve_algorithm(" md5 "), "md5")

    def test_unsupported_algorithm(self):
        with self.assertRaises(UnsupportedHashAlgorithmError):
            resolve_algorithm("CRC32")
        with self.assertRaises(ValueError):
            resolve_algorithm("")


class TestComputeDigest(unittest.TestCase):

    def test_deterministic(self):
        for name in ("HOST01", "ws-1234", "SRV-DC-01", "ñandú"):
            self.assertEqual(compute_digest(name), compute_digest(name))

    def test_matches_hashlib_uppercase(self):
        expected = hashlib.sha256("HOST01".encode("utf-8")).hexdigest().upper()
        self.assertEqual(compute_digest("HOST01"), expected)

    def test_fixed_length_per_algorithm(self):
        lengths = {"MD5": 32, "SHA1": 40, "SHA256": 64, "SHA384": 96, "SHA512": 128}
        for algorithm, length in lengths.items():
            digest = compute_digest("HOST01", algorithm)
            self.assertEqual(len(digest), length, algorithm)
            self.assertTrue(set(digest) <= HEX_DIGITS, algorithm)

    def test_name_case_changes_digest(self):
        self.assertNotEqual(compute_digest("host01"), compute_digest("HOST01"))


class TestAssignment(unittest.TestCase):

    def test_assigned_group_uses_last_character(self):
        self.assertEqual(assigned_group("WECGroup", "00AF"), "WECGroupF")

    def test_suffix_is_single_hex_digit(self):
        for index in range(200):
            machine = assign_machine(f"PC{index:04d}", f"S-1-5-21-1-{index}", "WECGroup")
            suffix = machine.assigned_group[len("WECGroup"):]
            self.assertEqual(len(suffix), 1)
            self.assertIn(suffix, HEX_DIGITS)

    def test_host01_example(self):
        machine = assign_machine("HOST01", "S-1-5-21-1-1001", "WECGroup")
        digest = hashlib.sha256(b"HOST01").hexdigest().upper()
        self.assertEqual(machine.name, "HOST01")
        self.assertEqual(machine.sid, "S-1-5-21-1-1001")
        self.assertEqual(machine.digest, digest)
        self.assertEqual(machine.assigned_group, "WECGroup" + digest[-1])

    def test_machine_is_immutable(self):
        machine = assign_machine("HOST01", "S-1-5-21-1-1001", "WECGroup")
        with self.assertRaises(AttributeError):
            machine.assigned_group = "WECGroup0"

    def test_empty_name_rejected(self):
        with self.assertRaises(ValueError):
            assign_machine("", "S-1-5-21-1-1001", "WECGroup")

    def test_alternate_algorithm(self):
        machine = assign_machine("HOST01", "S-1", "WECGroup", "MD5")
        self.assertEqual(machine.digest, hashlib.md5(b"HOST01").hexdigest().upper())


if __name__ == "__main__":
    unittest.main()
