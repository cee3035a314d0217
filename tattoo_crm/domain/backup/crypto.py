"""
Encrypted backup container, version 1.

Layout::

    b"TCRM1" | uint32 big-endian header length | JSON header | ciphertext | 16-byte GCM tag

The header records the scrypt parameters and the base64 salt and IV. The
key is scrypt(password, salt, n, r, p) with a 32-byte output, used for
AES-256-GCM with a 12-byte IV.
"""

import base64
import json
import os
import struct
from typing import BinaryIO, Iterator

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

MAGIC = b"TCRM1"
TAG_SIZE = 16
SALT_SIZE = 16
IV_SIZE = 12
KEY_SIZE = 32
SCRYPT_N = 2**15
SCRYPT_R = 8
SCRYPT_P = 1
CHUNK_SIZE = 1024 * 1024


class BackupFormatError(ValueError):
    """The file is not a readable backup (bad magic, header, size, password or tampered data)"""


def derive_key(password: str, salt: bytes, n: int = SCRYPT_N, r: int = SCRYPT_R, p: int = SCRYPT_P) -> bytes:
    return Scrypt(salt=salt, length=KEY_SIZE, n=n, r=r, p=p).derive(password.encode("utf-8"))


def build_header(salt: bytes, iv: bytes, n: int = SCRYPT_N, r: int = SCRYPT_R, p: int = SCRYPT_P) -> dict:
    return {
        "v": 1,
        "alg": "aes-256-gcm",
        "kdf": "scrypt",
        "saltB64": base64.b64encode(salt).decode("ascii"),
        "ivB64": base64.b64encode(iv).decode("ascii"),
        "n": n,
        "r": r,
        "p": p,
    }


def pack_header(header: dict) -> bytes:
    raw = json.dumps(header, separators=(",", ":")).encode("utf-8")
    return MAGIC + struct.pack(">I", len(raw)) + raw


def _check_header(header: dict) -> None:
    if header.get("v") != 1 or header.get("alg") != "aes-256-gcm" or header.get("kdf") != "scrypt":
        raise BackupFormatError("Unsupported backup header")


def unpack_header(data: bytes) -> tuple[dict, int]:
    """Parse the container prefix; returns (header, offset of the ciphertext)"""
    prefix = len(MAGIC) + 4
    if len(data) < prefix or data[: len(MAGIC)] != MAGIC:
        raise BackupFormatError("Invalid backup file (magic mismatch)")
    (header_len,) = struct.unpack(">I", data[len(MAGIC) : prefix])
    if len(data) < prefix + header_len + TAG_SIZE:
        raise BackupFormatError("Backup file is truncated")
    try:
        header = json.loads(data[prefix : prefix + header_len].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BackupFormatError("Unreadable backup header") from e
    if not isinstance(header, dict):
        raise BackupFormatError("Unreadable backup header")
    _check_header(header)
    return header, prefix + header_len


def _key_and_iv(password: str, header: dict) -> tuple[bytes, bytes]:
    try:
        salt = base64.b64decode(header["saltB64"])
        iv = base64.b64decode(header["ivB64"])
        key = derive_key(password, salt, int(header["n"]), int(header["r"]), int(header["p"]))
    except (KeyError, TypeError, ValueError) as e:
        raise BackupFormatError("Unsupported backup header") from e
    return key, iv


class Encryptor:
    """Incremental writer: header first, then ciphertext chunks, then the tag"""

    def __init__(self, password: str, n: int = SCRYPT_N, r: int = SCRYPT_R, p: int = SCRYPT_P):
        salt = os.urandom(SALT_SIZE)
        iv = os.urandom(IV_SIZE)
        self.header = build_header(salt, iv, n, r, p)
        self._ctx = Cipher(algorithms.AES(derive_key(password, salt, n, r, p)), modes.GCM(iv)).encryptor()

    def start(self) -> bytes:
        return pack_header(self.header)

    def update(self, chunk: bytes) -> bytes:
        return self._ctx.update(chunk)

    def finish(self) -> bytes:
        return self._ctx.finalize() + self._ctx.tag


def encrypt_bytes(password: str, plaintext: bytes, **params) -> bytes:
    enc = Encryptor(password, **params)
    return enc.start() + enc.update(plaintext) + enc.finish()


def decrypt_bytes(password: str, data: bytes) -> bytes:
    header, offset = unpack_header(data)
    key, iv = _key_and_iv(password, header)
    ciphertext, tag = data[offset:-TAG_SIZE], data[-TAG_SIZE:]
    ctx = Cipher(algorithms.AES(key), modes.GCM(iv, tag)).decryptor()
    try:
        return ctx.update(ciphertext) + ctx.finalize()
    except InvalidTag as e:
        raise BackupFormatError("Wrong password or corrupted backup") from e


def _read_chunks(src: BinaryIO, remaining: int) -> Iterator[bytes]:
    while remaining > 0:
        chunk = src.read(min(CHUNK_SIZE, remaining))
        if not chunk:
            raise BackupFormatError("Backup file is truncated")
        remaining -= len(chunk)
        yield chunk


def encrypt_file(src_path: str, dst_path: str, password: str, **params) -> None:
    enc = Encryptor(password, **params)
    with open(src_path, "rb") as src, open(dst_path, "wb") as dst:
        dst.write(enc.start())
        for chunk in iter(lambda: src.read(CHUNK_SIZE), b""):
            dst.write(enc.update(chunk))
        dst.write(enc.finish())


def decrypt_file(src_path: str, dst_path: str, password: str) -> None:
    """Decrypt to dst_path; the output is removed when authentication fails"""
    size = os.path.getsize(src_path)
    with open(src_path, "rb") as src:
        prefix = src.read(len(MAGIC) + 4)
        if len(prefix) < len(MAGIC) + 4 or prefix[: len(MAGIC)] != MAGIC:
            raise BackupFormatError("Invalid backup file (magic mismatch)")
        (header_len,) = struct.unpack(">I", prefix[len(MAGIC) :])
        header_raw = src.read(header_len)
        offset = len(prefix) + header_len
        if len(header_raw) < header_len or size < offset + TAG_SIZE:
            raise BackupFormatError("Backup file is truncated")
        header, _ = unpack_header(prefix + header_raw + b"\0" * TAG_SIZE)

        src.seek(size - TAG_SIZE)
        tag = src.read(TAG_SIZE)
        src.seek(offset)

        key, iv = _key_and_iv(password, header)
        ctx = Cipher(algorithms.AES(key), modes.GCM(iv, tag)).decryptor()
        try:
            with open(dst_path, "wb") as dst:
                for chunk in _read_chunks(src, size - TAG_SIZE - offset):
                    dst.write(ctx.update(chunk))
                dst.write(ctx.finalize())
        except InvalidTag as e:
            os.remove(dst_path)
            raise BackupFormatError("Wrong password or corrupted backup") from e
