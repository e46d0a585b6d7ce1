"""
Matching-preference filters for the discovery list.

Every filter has the shape ``(candidates, viewer) -> candidates`` so any of
them, or a ``chain`` of them, can be passed to ``select_distributed`` as
``apply_total_filter``. Mutual ("_mutual") filters pass a candidate only when
the candidate fits the viewer's search conditions and the viewer fits the
candidate's. The others apply the viewer's conditions only.

Search conditions left blank or set to "전체" (all) are unbounded.
"""

import math
import re
from typing import Any, Callable, Iterable, List, Mapping, Optional, Set, Tuple

from .logger import get_logger
from .normalize import candidate_id, is_all, is_on, normalize_id, normalize_text, to_number

Filter = Callable[[List[Mapping[str, Any]], Any], List[Mapping[str, Any]]]

DEFAULT_RECEIVE_LIMIT = 19

OPPOSITE_SEX = "이성친구"
SAME_SEX = "동성친구"
PREF_FO_ALL = "FO_ALL"
PREF_FO_OWN = "FO_OWN"
PREF_SO_ALL = "SO_ALL"
PREF_SO_OWN = "SO_OWN"
PREF_LEGACY = "LEGACY"
PREFERENCE_RULES = (
    (re.compile(r"^이성친구\s*-\s*전체$"), PREF_FO_ALL),
    (re.compile(r"^이성친구\s*-\s*내\s*성향$"), PREF_FO_OWN),
    (re.compile(r"^동성친구\s*-\s*전체$"), PREF_SO_ALL),
    (re.compile(r"^동성친구\s*-\s*내\s*성향$"), PREF_SO_OWN),
)

# Main-photo fields, in lookup order. profileImage, avatar and photo are legacy.
MAIN_PHOTO_FIELDS = ("profileMain", "profileMainUrl", "profileMainURL", "profileImage", "avatar", "photo")
URL_PREFIX = re.compile(r"^(https?:)?//", re.IGNORECASE)
IMAGE_SUFFIX = re.compile(r"\.(png|jpe?g|webp|gif)$", re.IGNORECASE)

# Relationship lists on the viewer record whose members are excluded.
RELATION_FIELDS = (
    "friends",
    "friendIds",
    "friendlist",
    "blocks",
    "blockIds",
    "blocklist",
    "chatPartners",
    "chatPartnerIds",
)
REQUEST_FIELDS = ("sentRequests", "receivedRequests", "requests")
REQUEST_PARTY_KEYS = (
    "from", "to", "requester", "recipient", "sender", "receiver",
    "userId", "otherId", "targetId", "peerId",
)


def _field(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return None


def _list_field(record: Mapping[str, Any], key: str) -> list:
    value = record.get(key)
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return []


def _as_list(candidates: Any) -> List[Mapping[str, Any]]:
    if candidates is None:
        return []
    return [c for c in candidates if isinstance(c, Mapping)]


def pass_through(candidates, viewer=None):
    """Total filter that keeps everyone."""
    return _as_list(candidates)


def chain(*filters: Filter) -> Filter:
    """AND-combine filters, applied left to right."""

    def apply(candidates, viewer=None):
        logger = get_logger()
        current = _as_list(candidates)
        for f in filters:
            before = len(current)
            current = _as_list(f(current, viewer))
            if before != len(current):
                logger.debug(
                    "Filter removed candidates",
                    filter=getattr(f, "__name__", repr(f)),
                    before=before,
                    after=len(current),
                )
        return current

    return apply


# --- Relationship filters ---

def exclude_self(candidates, viewer=None):
    my_id = normalize_id(viewer)
    return [c for c in _as_list(candidates) if not my_id or candidate_id(c) != my_id]


def _request_other_id(request: Any, my_id: str) -> str:
    if not isinstance(request, Mapping):
        return normalize_id(request)
    for key in REQUEST_PARTY_KEYS:
        other = normalize_id(request.get(key))
        if other and other != my_id:
            return other
    return ""


def collect_relation_ids(viewer: Any) -> Set[str]:
    """Ids of friends, blocks, chat partners and pending requests of a viewer."""
    ids: Set[str] = set()
    if not isinstance(viewer, Mapping):
        return ids
    my_id = normalize_id(viewer)

    sources = [viewer]
    relations = viewer.get("relations")
    if isinstance(relations, Mapping):
        sources.append(relations)

    for source in sources:
        for field in RELATION_FIELDS:
            for item in _list_field(source, field):
                ids.add(normalize_id(item))
        for field in REQUEST_FIELDS:
            for item in _list_field(source, field):
                ids.add(_request_other_id(item, my_id))

    ids.discard("")
    ids.discard(my_id)
    return ids


def exclude_relations(candidates, viewer=None):
    related = collect_relation_ids(viewer)
    return [c for c in _as_list(candidates) if candidate_id(c) not in related]


# --- Birth year ---

def normalize_year(value: Any) -> Optional[float]:
    if is_all(value):
        return None
    return to_number(value)


def in_range(year: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if year is None:
        return False
    if low is not None and year < low:
        return False
    if high is not None and year > high:
        return False
    return True


def search_year_range(user: Any) -> Tuple[Optional[float], Optional[float]]:
    return (
        normalize_year(_field(user, "search_birthyear1")),
        normalize_year(_field(user, "search_birthyear2")),
    )


def by_birth_year_mutual(candidates, viewer=None):
    """Drops candidates without a numeric birth year."""
    my_birth = normalize_year(_field(viewer, "birthyear"))
    my_low, my_high = search_year_range(viewer)

    out = []
    for other in _as_list(candidates):
        birth = to_number(other.get("birthyear"))
        if birth is None:
            continue
        if (my_low is not None or my_high is not None) and not in_range(birth, my_low, my_high):
            continue
        their_low, their_high = search_year_range(other)
        if (their_low is not None or their_high is not None) and not in_range(my_birth, their_low, their_high):
            continue
        out.append(other)
    return out


# --- Region ---

def user_region(user: Any) -> Tuple[str, str]:
    return normalize_text(_field(user, "region1")), normalize_text(_field(user, "region2"))


def search_region_rules(user: Any) -> List[Tuple[str, str]]:
    """
    Region rules of a user, in priority order: a ``search_regions`` list,
    then the single ``search_region1/2`` pair, then "all".
    """
    rules_src = []
    if isinstance(user, Mapping):
        rules_src = _list_field(user, "search_regions") or _list_field(user, "searchRegions")
    rules = []
    for item in rules_src:
        if not isinstance(item, Mapping):
            continue
        rule = (normalize_text(item.get("region1")), normalize_text(item.get("region2")))
        if rule != ("", ""):
            rules.append(rule)
    if rules:
        return rules

    single = (
        normalize_text(_field(user, "search_region1")),
        normalize_text(_field(user, "search_region2")),
    )
    if single != ("", ""):
        return [single]
    return [("", "")]


def match_region_rule(region: Tuple[str, str], rule: Tuple[str, str]) -> bool:
    rule1, rule2 = rule
    if is_all(rule1):
        return True
    if is_all(rule2):
        return region[0] == rule1
    return region == (rule1, rule2)


def match_region_rules(region: Tuple[str, str], rules: Iterable[Tuple[str, str]]) -> bool:
    return any(match_region_rule(region, rule) for rule in rules)


def by_region_mutual(candidates, viewer=None):
    my_region = user_region(viewer)
    my_rules = search_region_rules(viewer)
    return [
        other for other in _as_list(candidates)
        if match_region_rules(user_region(other), my_rules)
        and match_region_rules(my_region, search_region_rules(other))
    ]


# --- Marriage status ---

def _passes_marriage_rule(searcher: Any, target: Any) -> bool:
    wanted = normalize_text(_field(searcher, "search_marriage"))
    if is_all(wanted):
        return True
    actual = normalize_text(_field(target, "marriage"))
    return bool(actual) and actual == wanted


def by_marriage_mutual(candidates, viewer=None):
    return [
        other for other in _as_list(candidates)
        if _passes_marriage_rule(viewer, other) and _passes_marriage_rule(other, viewer)
    ]


# --- Preference (friend type) ---

def normalize_gender(value: Any) -> str:
    text = normalize_text(value).lower()
    if text in ("man", "male"):
        return "man"
    if text in ("woman", "female"):
        return "woman"
    return ""


def normalize_label(value: Any) -> str:
    """'이성친구-전체' and '이성친구  -  전체' both become '이성친구 - 전체'."""
    return normalize_text(re.sub(r"\s*-\s*", " - ", normalize_text(value)))


def preference_head(value: Any) -> str:
    label = normalize_label(value)
    for head in (OPPOSITE_SEX, SAME_SEX):
        if label.startswith(head):
            return head
    return ""


def classify_search_preference(value: Any) -> str:
    label = normalize_label(value)
    for pattern, kind in PREFERENCE_RULES:
        if pattern.match(label):
            return kind
    return PREF_LEGACY


def own_preference(user: Any) -> str:
    """A user's own preference label, falling back to their search_preference."""
    return normalize_label(
        normalize_text(_field(user, "preference")) or normalize_text(_field(user, "search_preference"))
    )


def passes_preference_rule(searcher: Any, target: Any) -> bool:
    """
    Does ``target`` fit ``searcher``'s search_preference?

    "이성친구 - 전체" wants any opposite-sex-friend profile of the other
    gender, "이성친구 - 내 성향" the searcher's own preference and the other
    gender; the "동성친구" forms do the same for the same gender. Any other
    value only matches an identical search_preference.
    """
    wanted = normalize_label(_field(searcher, "search_preference"))
    kind = classify_search_preference(wanted)

    if kind == PREF_LEGACY:
        return bool(wanted) and wanted == normalize_label(_field(target, "search_preference"))

    my_gender = normalize_gender(_field(searcher, "gender"))
    their_gender = normalize_gender(_field(target, "gender"))
    if not my_gender or not their_gender:
        return False
    gender_ok = (my_gender != their_gender) if kind in (PREF_FO_ALL, PREF_FO_OWN) else (my_gender == their_gender)
    if not gender_ok:
        return False

    theirs = own_preference(target)
    if kind == PREF_FO_ALL:
        return preference_head(theirs) == OPPOSITE_SEX
    if kind == PREF_SO_ALL:
        return preference_head(theirs) == SAME_SEX
    mine = normalize_label(_field(searcher, "preference"))
    return bool(mine) and theirs == mine


def by_preference(candidates, viewer=None):
    """Viewer's preference rule only; the normal list applies it one way."""
    return [other for other in _as_list(candidates) if passes_preference_rule(viewer, other)]


def by_preference_mutual(candidates, viewer=None):
    return [
        other for other in _as_list(candidates)
        if passes_preference_rule(viewer, other) and passes_preference_rule(other, viewer)
    ]


# --- Photo ---

def has_representative_photo(user: Any, fail_close: bool = False) -> bool:
    """
    True when the user has a main photo that is not a default avatar.

    When none of the main-photo fields is present at all, photo counts decide
    unless ``fail_close`` is set.
    """
    if not isinstance(user, Mapping):
        return False
    present = any(key in user for key in MAIN_PHOTO_FIELDS)
    if present:
        main = next((normalize_text(user.get(key)) for key in MAIN_PHOTO_FIELDS
                     if normalize_text(user.get(key))), "")
        if not main:
            return False
        if URL_PREFIX.match(main) or "/" in main or IMAGE_SUFFIX.search(main):
            lowered = main.lower()
            return "man.jpg" not in lowered and "woman.jpg" not in lowered
        return True

    if fail_close:
        return False
    images = user.get("profileImages")
    if isinstance(images, list) and images:
        return True
    return any(_whole_count(user.get(key)) > 0 for key in ("imagesCount", "photoCount"))


def _whole_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return int(value)


def by_photo(candidates, viewer=None):
    """With the viewer's search_onlyWithPhoto on, only candidates with a main photo pass."""
    if not is_on(_field(viewer, "search_onlyWithPhoto")):
        return _as_list(candidates)
    return [other for other in _as_list(candidates) if has_representative_photo(other)]


# --- Local contacts ---

def _in_contacts(value: Any, hashes: Any) -> bool:
    if not isinstance(value, str) or not value or not isinstance(hashes, (list, tuple, set, frozenset)):
        return False
    return value in hashes


def by_contacts_mutual(candidates, viewer=None):
    """
    Hide people in the viewer's contacts when the viewer's switch is on, and
    hide candidates who have the viewer in their contacts with their switch on.

    Server flags (``isInMyContacts``, ``amInTheirContacts``) win over phone
    hash comparison.
    """
    mine_on = is_on(_field(viewer, "search_disconnectLocalContacts"))
    my_hashes = _field(viewer, "localContactHashes")
    my_phone = _field(viewer, "phoneHash")

    out = []
    for other in _as_list(candidates):
        if mine_on:
            flag = other.get("isInMyContacts")
            excluded = flag if isinstance(flag, bool) else _in_contacts(other.get("phoneHash"), my_hashes)
            if excluded:
                continue
        if is_on(other.get("search_disconnectLocalContacts")):
            flag = other.get("amInTheirContacts")
            excluded = flag if isinstance(flag, bool) else _in_contacts(my_phone, other.get("localContactHashes"))
            if excluded:
                continue
        out.append(other)
    return out


# --- Exposure switches ---

def is_receive_off(user: Any) -> bool:
    """True when the user refuses friend requests ('ON' = refuse, False = refuse)."""
    value = _field(user, "search_allowFriendRequests")
    if isinstance(value, bool):
        return not value
    return normalize_text(value).upper() == "ON"


def by_receive_off(candidates, viewer=None):
    """A viewer refusing requests sees nobody; refusing candidates are hidden."""
    if is_receive_off(viewer):
        return []
    return [other for other in _as_list(candidates) if not is_receive_off(other)]


def by_premium_exposure(candidates, viewer=None):
    """Premium-only users never appear in, nor see, the normal list."""
    if is_on(_field(viewer, "search_matchPremiumOnly")):
        return []
    return [
        other for other in _as_list(candidates)
        if not is_on(other.get("search_matchPremiumOnly"))
    ]


def is_receive_limit_reached(pending_count: Any, receive_limit: Any) -> bool:
    pending = to_number(pending_count)
    limit = to_number(receive_limit)
    if pending is None or limit is None:
        return False
    return pending >= limit


def receive_limit_gate(default_limit: int = DEFAULT_RECEIVE_LIMIT) -> Filter:
    """Hide the whole list once the viewer's pending requests reach their limit."""

    def by_receive_limit(candidates, viewer=None):
        pending = _field(viewer, "pendingCount")
        limit = _field(viewer, "receiveLimit")
        if is_receive_limit_reached(pending if pending is not None else 0,
                                    limit if limit is not None else default_limit):
            return []
        return _as_list(candidates)

    return by_receive_limit


total_filter_normal = chain(
    exclude_self,
    exclude_relations,
    by_birth_year_mutual,
    by_region_mutual,
    by_preference,
    by_marriage_mutual,
    by_photo,
    by_contacts_mutual,
    by_receive_off,
    by_premium_exposure,
    receive_limit_gate(),
)
