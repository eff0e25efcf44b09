from cardjudge import db
from cardjudge.errors import CardSetNotFound, NotFound
from cardjudge.models import CardSet, PromptCard, ResponseCard, card_id, get_special
import re


def get_card_sets(set_ids):
    """Fetch every requested card set, failing if any id is unknown."""
    set_ids = list(dict.fromkeys(set_ids or []))
    if not set_ids:
        return []
    sets = CardSet.query.filter(CardSet.id.in_(set_ids)).all()
    missing = set(set_ids) - {s.id for s in sets}
    if missing:
        raise CardSetNotFound(sorted(missing))
    return sets


def prompt_ids(card_sets):
    ids = [s.id for s in card_sets]
    rows = db.session.query(PromptCard.cid).filter(PromptCard.set_id.in_(ids)).order_by(PromptCard.cid).all()
    return [cid for (cid,) in rows]


def response_ids(card_sets):
    ids = [s.id for s in card_sets]
    rows = db.session.query(ResponseCard.cid).filter(ResponseCard.set_id.in_(ids)).order_by(ResponseCard.cid).all()
    return [cid for (cid,) in rows]


def get_prompt_card(cid):
    card = PromptCard.query.filter_by(cid=cid).first()
    if card is None:
        raise NotFound(f"Unknown prompt card {cid}")
    return card


def get_response_cards(cids):
    """Resolve response card ids, keeping the order they were given in."""
    if not cids:
        return []
    cards = {c.cid: c for c in ResponseCard.query.filter(ResponseCard.cid.in_(list(cids))).all()}
    return [cards[cid] for cid in cids if cid in cards]


def _slug(name):
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-') or 'set'


def seed_card_set(name, prompts, responses, set_id=None, source=None):
    """
    Add (or extend) a card set. Prompts are {"text", "special"?} dicts or
    plain strings, responses plain strings. Cards already present are
    skipped since their id is derived from the set and the text.

    The caller commits.
    """
    set_id = set_id or _slug(name)
    card_set = CardSet.query.filter_by(id=set_id).first()
    if card_set is None:
        card_set = CardSet(id=set_id, name=name)
        db.session.add(card_set)

    seen = set()
    for prompt in prompts:
        if isinstance(prompt, str):
            prompt = {'text': prompt}
        cid = card_id(set_id, prompt['text'])
        if cid in seen or PromptCard.query.filter_by(cid=cid).first():
            continue
        seen.add(cid)
        db.session.add(PromptCard(
            cid=cid,
            text=prompt['text'],
            special=get_special(prompt.get('special')),
            set_id=set_id,
            source=source,
        ))

    seen = set()
    for text in responses:
        cid = card_id(set_id, text)
        if cid in seen or ResponseCard.query.filter_by(cid=cid).first():
            continue
        seen.add(cid)
        db.session.add(ResponseCard(cid=cid, text=text, set_id=set_id, source=source))

    db.session.flush()
    return card_set
