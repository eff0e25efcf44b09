"""Judge rotation: a circular list of player ids, never including the bot."""


def build(players, rng):
    order = [p.user_id for p in players if p.is_active_human]
    rng.shuffle(order)
    return order


def next_judge(rotation, current):
    """The entry after `current`, wrapping to the start.

    A judge missing from the rotation hands over to the first entry.
    """
    if not rotation:
        return None
    if current not in rotation:
        return rotation[0]
    return rotation[(rotation.index(current) + 1) % len(rotation)]


def with_player(rotation, player_id):
    """Append to the tail so a newcomer judges only after everyone else."""
    rotation = list(rotation or [])
    if player_id not in rotation:
        rotation.append(player_id)
    return rotation


def without_player(rotation, player_id):
    return [pid for pid in (rotation or []) if pid != player_id]
