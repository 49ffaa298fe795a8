import hashlib

from constants import HASH_ALGORITHM, HASH_ALGORITHMS
from models import Machine


class UnsupportedHashAlgorithmError(ValueError):
    pass


def resolve_algorithm(algorithm: str = HASH_ALGORITHM) -> str:
    """
    Returns the hashlib name for a configured algorithm identifier.

    Raises UnsupportedHashAlgorithmError when the identifier is not one of
    MD5, SHA1, SHA256, SHA384 or SHA512 (case-insensitive).
    """
    key = (algorithm or "").strip().upper().replace("-", "")
    if key not in HASH_ALGORITHMS:
        supported = ", ".join(sorted(HASH_ALGORITHMS))
        raise UnsupportedHashAlgorithmError(
            f"Unsupported hash algorithm '{algorithm}'. Supported: {supported}"
        )
    return HASH_ALGORITHMS[key]


def compute_digest(name: str, algorithm: str = HASH_ALGORITHM) -> str:
    """Uppercase hex digest of the UTF-8 encoded name."""
    digest = hashlib.new(resolve_algorithm(algorithm), name.encode("utf-8"))
    return digest.hexdigest().upper()


def assigned_group(prefix: str, digest: str) -> str:
    return f"{prefix}{digest[-1]}"


def assign_machine(name: str, sid: str, prefix: str, algorithm: str = HASH_ALGORITHM) -> Machine:
    """
    Builds the Machine record for a computer object.

    :param name: Directory name of the computer
    :param sid: Security identifier used for the membership change
    :param prefix: Base group name the hex suffix is appended to
    :param algorithm: Hash algorithm identifier
    :return: Machine with digest and assigned group populated
    """
    if not name:
        raise ValueError("Machine name must not be empty")

    digest = compute_digest(name, algorithm)
    return Machine(
        name=name,
        sid=sid,
        digest=digest,
        assigned_group=assigned_group(prefix, digest),
    )
