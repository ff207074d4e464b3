"""
Version comparison helpers.

Server versions look like "3.66.0" or "3.65.9-rc1"; only the leading numeric
segments take part in the comparison, a pre-release suffix sorts before the
plain release.
"""
import re


def _version_key(version):
    if not version:
        return tuple()

    numbers = []
    pre_release = False
    for part in re.split(r'[.\-_+]', str(version).strip().lstrip('vV')):
        if not part:
            continue
        match = re.match(r'^(\d+)(.*)$', part)
        if not match:
            pre_release = True
            break
        numbers.append(int(match.group(1)))
        if match.group(2):
            pre_release = True
            break

    while numbers and numbers[-1] == 0:
        numbers.pop()
    # (numbers, 0) for pre-releases sorts before (numbers, 1)
    return (tuple(numbers), 0 if pre_release else 1)


def compare_versions(left, right):
    """Return -1, 0 or 1 like a classic cmp()."""
    lk, rk = _version_key(left), _version_key(right)
    if lk < rk:
        return -1
    if lk > rk:
        return 1
    return 0


def is_at_least(version, minimum):
    if not version:
        return False
    return compare_versions(version, minimum) >= 0
