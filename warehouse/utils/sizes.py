"""
Size helpers shared by the download gate, the reclaimer and log lines.
"""

BYTES_PER_GIGABYTE = 1024 ** 3


def gigabytes_to_bytes(gigabytes) -> int:
    return int(float(gigabytes) * BYTES_PER_GIGABYTE)


def format_size(size) -> str:
    """Render a byte count as GiB with two decimals."""
    if size is None:
        return "unknown size"
    return "%.2f GiB" % (float(size) / BYTES_PER_GIGABYTE)
