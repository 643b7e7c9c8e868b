"""Resolve @mentions in comment text to organization members.

Two token forms are recognised:

* ``@[<user_id>:<Display Name>]``, written by clients that know the id;
  matched by id, the label is ignored.
* ``@Display Name``, matched against the longest candidate display name the
  text after ``@`` starts with. Names are case-sensitive and must end at a
  word boundary. A display name shared by two candidates resolves to nobody.
"""
import re
from collections import defaultdict

ID_MENTION = re.compile(r"@\[(?P<user_id>[^:\]]+):(?P<label>[^\]]*)\]")


def _names_longest_first(candidates) -> list[tuple[str, list]]:
    by_name = defaultdict(list)
    for user in candidates:
        if user.name:
            by_name[user.name].append(user)
    return sorted(by_name.items(), key=lambda item: len(item[0]), reverse=True)


def _ends_at_boundary(body: str, end: int) -> bool:
    return end == len(body) or not (body[end].isalnum() or body[end] == "_")


def resolve_mentions(body: str, candidate_users) -> list:
    """Mentioned users, de-duplicated in order of first appearance."""
    candidate_users = list(candidate_users)
    by_id = {user.user_id: user for user in candidate_users}
    names = _names_longest_first(candidate_users)
    found = []
    seen = set()

    def add(user):
        if user.user_id not in seen:
            seen.add(user.user_id)
            found.append(user)

    pos = 0
    while True:
        at = body.find("@", pos)
        if at == -1:
            break
        token = ID_MENTION.match(body, at)
        if token:
            user = by_id.get(token.group("user_id").strip())
            if user is not None:
                add(user)
            pos = token.end()
            continue
        start = at + 1
        pos = start
        for name, users in names:
            end = start + len(name)
            if body.startswith(name, start) and _ends_at_boundary(body, end):
                if len(users) == 1:
                    add(users[0])
                pos = end
                break
    return found
