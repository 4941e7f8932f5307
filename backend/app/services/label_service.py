"""
Label curation for the label picker.

Gmail returns every label of the mailbox, including plumbing labels
(DRAFT, SPAM, CATEGORY_*) the UI has no use for. This module filters
them, gives system labels readable names and orders the result.
"""
from typing import Iterable, List

from app.models.label import Label

HIDDEN_SYSTEM_LABELS = frozenset({
    "CHAT",
    "DRAFT",
    "SENT",
    "SPAM",
    "TRASH",
    "INBOX",
    "STARRED",
    "UNREAD",
    "YELLOW_STAR",
    "CATEGORY_PERSONAL",
    "CATEGORY_SOCIAL",
    "CATEGORY_UPDATES",
    "CATEGORY_FORUMS",
    "CATEGORY_PURCHASES",
    "CATEGORY_FINANCE",
    "CATEGORY_TRAVEL",
    "CATEGORY_NOTIFICATIONS",
    "CATEGORY_PRIMARY",
})

SYSTEM_LABEL_NAMES = {
    "INBOX": "Inbox",
    "STARRED": "Starred",
    "IMPORTANT": "Important",
    "UNREAD": "Unread",
    "SNOOZED": "Snoozed",
    "CATEGORY_PRIMARY": "Primary",
    "CATEGORY_PROMOTIONS": "Promotions",
    "CATEGORY_SOCIAL": "Social",
    "CATEGORY_UPDATES": "Updates",
    "CATEGORY_FORUMS": "Forums",
}

# Offered as a filter even though Gmail hides it
ALWAYS_INCLUDE = frozenset({"CATEGORY_PROMOTIONS"})


def is_visible(raw: dict) -> bool:
    label_id = raw.get("id")
    if raw.get("type") == "user" or label_id in ALWAYS_INCLUDE:
        return True
    return label_id not in HIDDEN_SYSTEM_LABELS and raw.get("labelListVisibility") != "labelHide"


def display_name(raw: dict) -> str:
    label_id = raw.get("id") or ""
    name = raw.get("name")
    if raw.get("type") == "user":
        return name or label_id
    return SYSTEM_LABEL_NAMES.get(label_id) or name or label_id


def _sort_key(label: Label):
    group = 0 if label.type == "system" else 1
    return (group, label.display_name.casefold(), label.display_name)


def curate(raw_labels: Iterable[dict]) -> List[Label]:
    """
    Filter, rename and order Gmail labels.

    System labels come before user labels; each group is ordered by
    display name, ignoring case.
    """
    labels = []
    for raw in raw_labels:
        if not raw.get("id") or not is_visible(raw):
            continue
        labels.append(Label(
            id=raw["id"],
            name=raw.get("name") or raw["id"],
            type="user" if raw.get("type") == "user" else "system",
            display_name=display_name(raw),
        ))
    return sorted(labels, key=_sort_key)
