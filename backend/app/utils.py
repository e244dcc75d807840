from datetime import datetime, timezone
import re
import unicodedata

def utc_now():
    return datetime.now(timezone.utc)

def normalize_person_name(name: str) -> str:
    if not name:
        return ''
    text = unicodedata.normalize('NFKD', name)
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r'\s+', ' ', text).strip().upper()
