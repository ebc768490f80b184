DEFAULT_LIMIT = 50
MAX_LIMIT = 200

def normalize_pagination(limit_raw, offset_raw):
    """Clamp ``limit`` to [1, MAX_LIMIT] and ``offset`` to >= 0.

    Blank query values fall back to the defaults; non-integers raise ValueError.
    """
    try:
        limit = int(limit_raw) if limit_raw not in (None, '') else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw not in (None, '') else 0
    except ValueError:
        raise ValueError('limit/offset must be integers')
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)
