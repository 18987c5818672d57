"""
Representation assembly: content negotiation, HAL envelopes and Link headers.

Two media types are served. ``application/hal+json`` carries relations in
``_links`` (and lists in ``_embedded``) and never echoes ``_id``.
``application/json`` keeps the entity as stored and moves relations into a
``Link`` header.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

from bounce.errors import BadRequest
from bounce.kernel.paths import governance_href
from bounce.kernel.permissions import INHERIT_KEY

HAL_JSON = "application/hal+json"
JSON = "application/json"

# Offer order decides the representation when the client does not care
HAL_FIRST: Tuple[str, ...] = (HAL_JSON, JSON)
JSON_FIRST: Tuple[str, ...] = (JSON, HAL_JSON)

Links = Dict[str, Dict[str, str]]

_LINK_VALUE = re.compile(r"<([^>]*)>((?:\s*;\s*[^;,]*)*)")
_LINK_PARAM = re.compile(r";\s*([^\s=;,]+)\s*=\s*(\"[^\"]*\"|[^;,\s]*)")


def link(href: str) -> Dict[str, str]:
    return {"href": href}


def resource_links(path: str, governance_of: Optional[str] = None) -> Links:
    """``self`` plus ``governance`` for a governed resource."""
    return {
        "self": link(path),
        "governance": link(governance_href(governance_of or path)),
    }


def merge_links(entity: Dict[str, Any], links: Mapping[str, Dict[str, str]]) -> Dict[str, Any]:
    """
    Add relations to an entity's ``_links`` in place.

    Relations already present under other names are kept; no ``_links`` key
    is created when there is nothing to add.
    """
    if not links:
        return entity
    existing = entity.get("_links")
    if not isinstance(existing, dict):
        existing = {}
    existing.update(links)
    entity["_links"] = existing
    return entity


def render_link_header(links: Mapping[str, Dict[str, str]]) -> str:
    return ", ".join(f'<{value["href"]}>; rel="{relation}"' for relation, value in links.items())


def parse_link_header(value: Optional[str]) -> Dict[str, str]:
    """
    Parse an RFC 8288 ``Link`` header into ``{relation: href}``.

    Malformed parts are skipped; a link with several relations is
    registered under each.
    """
    links: Dict[str, str] = {}
    if not value:
        return links
    for match in _LINK_VALUE.finditer(value):
        href, params = match.group(1).strip(), match.group(2)
        for name, raw in _LINK_PARAM.findall(params):
            if name.lower() != "rel":
                continue
            for relation in raw.strip('"').split():
                links.setdefault(relation.lower(), href)
    return links


def _parse_accept(header: str) -> List[Tuple[str, float]]:
    ranges = []
    for part in header.split(","):
        pieces = [piece.strip() for piece in part.split(";")]
        media_range = pieces[0].lower()
        if not media_range:
            continue
        quality = 1.0
        for param in pieces[1:]:
            name, _, raw = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(raw)
                except ValueError:
                    quality = 0.0
        ranges.append((media_range, quality))
    return ranges


def _quality(media_type: str, ranges: List[Tuple[str, float]]) -> float:
    # The most specific matching range decides
    major = media_type.split("/")[0]
    best: Tuple[int, float] = (-1, 0.0)
    for media_range, quality in ranges:
        if media_range == media_type:
            specificity = 2
        elif media_range == f"{major}/*":
            specificity = 1
        elif media_range == "*/*":
            specificity = 0
        else:
            continue
        if specificity > best[0]:
            best = (specificity, quality)
    return best[1]


def negotiate(accept: Optional[str], offered: Sequence[str] = HAL_FIRST) -> str:
    """
    Pick the offered media type the client prefers.

    Falls back to the first offer when the header is absent or nothing
    offered is acceptable.
    """
    if not accept:
        return offered[0]
    ranges = _parse_accept(accept)
    best_type, best_quality = offered[0], 0.0
    for media_type in offered:
        quality = _quality(media_type, ranges)
        if quality > best_quality:
            best_type, best_quality = media_type, quality
    return best_type


def request_media_type(request: Request) -> str:
    """Declared body media type without parameters."""
    return request.headers.get("content-type", "").split(";")[0].strip().lower()


@dataclass
class Embedded:
    """A list of entities embedded under ``relation`` with per-item links."""

    relation: str
    items: List[Dict[str, Any]]
    links_for: Callable[[Dict[str, Any]], Links]


def _hal_item(item: Dict[str, Any], links: Links) -> Dict[str, Any]:
    entity = dict(item)
    entity.pop("_id", None)
    return merge_links(entity, links)


def represent(
    request: Request,
    body: Dict[str, Any],
    links: Links,
    embedded: Optional[Embedded] = None,
    offered: Sequence[str] = HAL_FIRST,
) -> JSONResponse:
    """Build the negotiated response for an entity or a list of entities."""
    media_type = negotiate(request.headers.get("accept"), offered)
    content = dict(body)

    if media_type == HAL_JSON:
        content.pop("_id", None)
        merge_links(content, links)
        if embedded is not None:
            content["_embedded"] = {
                embedded.relation: [
                    _hal_item(item, embedded.links_for(item)) for item in embedded.items
                ]
            }
        return JSONResponse(content, media_type=HAL_JSON)

    if embedded is not None:
        content[embedded.relation] = [dict(item) for item in embedded.items]
    headers = {"Link": render_link_header(links)} if links else None
    return JSONResponse(content, headers=headers, media_type=JSON)


# Inheritance pointer decoders, one per accepted governance media type.
# Each returns the payload to store and the pointer, if any.

PermissionsDecoder = Callable[[Dict[str, Any], Mapping[str, str]], Tuple[Dict[str, Any], Optional[str]]]


def _payload_without_links(body: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in body.items() if key not in ("_links", INHERIT_KEY)}


def _decode_json_permissions(
    body: Dict[str, Any],
    headers: Mapping[str, str],
) -> Tuple[Dict[str, Any], Optional[str]]:
    inherit = parse_link_header(headers.get("link")).get("inherit")
    return _payload_without_links(body), inherit


def _decode_hal_permissions(
    body: Dict[str, Any],
    headers: Mapping[str, str],
) -> Tuple[Dict[str, Any], Optional[str]]:
    inherit = None
    links = body.get("_links")
    if isinstance(links, dict) and isinstance(links.get("inherit"), dict):
        href = links["inherit"].get("href")
        if isinstance(href, str):
            inherit = href
    return _payload_without_links(body), inherit


PERMISSIONS_DECODERS: Dict[str, PermissionsDecoder] = {
    JSON: _decode_json_permissions,
    HAL_JSON: _decode_hal_permissions,
}


def decode_permissions(
    media_type: str,
    body: Any,
    headers: Mapping[str, str],
) -> Tuple[Dict[str, Any], Optional[str]]:
    """Normalize a governance update body into (payload, inherit pointer)."""
    if not isinstance(body, dict):
        raise BadRequest("Permissions must be a JSON object.")
    return PERMISSIONS_DECODERS[media_type](body, headers)
