import random
import uuid
from datetime import datetime
from typing import List, Optional


def shuffle_together(*arrays: List, rng: Optional[random.Random] = None) -> None:
    """Fisher-Yates: одна и та же перестановка для всех списков, на месте."""
    if not arrays:
        return
    rng = rng or random.Random()
    length = len(arrays[0])
    for arr in arrays:
        if not isinstance(arr, list):
            raise TypeError("Argument is not a list.")
        if len(arr) != length:
            raise ValueError("Array lengths do not match.")
    i = length
    while i:
        j = rng.randrange(i)
        i -= 1
        for arr in arrays:
            arr[i], arr[j] = arr[j], arr[i]


def guid() -> str:
    return str(uuid.uuid4())


def formatted_time(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{now.year}-{now.month}-{now.day}-{now.hour}-{now.minute}-{now.second}"
