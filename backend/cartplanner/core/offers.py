import math
import re
from typing import Any, Dict, Iterable, List, Optional

from cartplanner.schemas.offers import NormalizedOffer, RawOffer

# optional sign, then any currency text, then the number: "-$5.00", "$-5", "From $499.99"
_PRICE_RE = re.compile(r"(-?)[^\d-]*?(\d[\d,]*\.?\d*)")


def parse_price_value(price: Any) -> Optional[float]:
    """
    Converts strings like "$599.99", "From $499.99", "$1,402.58" to float.
    Returns None if not parseable, non-finite or not positive.
    """
    if price is None or isinstance(price, bool):
        return None

    if isinstance(price, (int, float)):
        value = float(price)
    else:
        m = _PRICE_RE.search(str(price))
        if not m:
            return None
        try:
            value = float(m.group(2).replace(",", ""))
            if m.group(1):
                value = -value
        except ValueError:
            return None

    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _text(v: Any) -> Optional[str]:
    if isinstance(v, str) and v.strip():
        return v.strip()
    return None


def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _as_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    # "1,204 reviews" style counts
    m = re.search(r"\d[\d,]*", str(v))
    if not m:
        return None
    return int(m.group(0).replace(",", ""))


def _first_text(r: Dict[str, Any], *keys: str) -> Optional[str]:
    for k in keys:
        v = _text(r.get(k))
        if v:
            return v
    return None


def raw_offer_from_serpapi(r: Dict[str, Any]) -> RawOffer:
    """
    Map one SerpAPI `shopping_results` entry onto a RawOffer.
    Field names vary between engines/versions, so try the known aliases.
    """
    price = r.get("price")
    return RawOffer(
        title=_text(r.get("title")),
        price=price if isinstance(price, (str, int, float)) else None,
        extracted_price=r.get("extracted_price", r.get("price_extracted")),
        source=_first_text(r, "source", "merchant", "seller", "store"),
        image_url=_first_text(r, "thumbnail", "imageUrl", "image"),
        link=_first_text(r, "link", "product_link", "productLink", "merchant_link"),
        rating=r.get("rating"),
        rating_count=r.get("reviews", r.get("ratingCount")),
    )


def normalize_offer(raw: RawOffer) -> Optional[NormalizedOffer]:
    """
    Validate one RawOffer. Returns None (rejected) when the title or source
    is missing/blank or no positive finite price can be read.
    """
    title = _text(raw.title)
    source = _text(raw.source)
    if not title or not source:
        return None

    price = None
    if isinstance(raw.extracted_price, (int, float)):
        price = parse_price_value(raw.extracted_price)
    if price is None:
        price = parse_price_value(raw.price)
    if price is None:
        return None

    price_text = raw.price if isinstance(raw.price, str) else None

    return NormalizedOffer(
        title=title,
        price=price,
        price_text=price_text,
        source=source,
        image_url=_text(raw.image_url),
        link=_text(raw.link),
        rating=_as_float(raw.rating),
        rating_count=_as_int(raw.rating_count),
    )


def normalize_offers(raws: Iterable[RawOffer]) -> List[NormalizedOffer]:
    out: List[NormalizedOffer] = []
    for raw in raws:
        offer = normalize_offer(raw)
        if offer is not None:
            out.append(offer)
    return out
