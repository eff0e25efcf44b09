"""Game domain services: decks, turns, downvotes and the game lifecycle.

Routes and socket handlers call into these modules; they own every rule
of the game and never touch HTTP. Commands that change several rows do
so inside one `store.transactional` unit and send pushes only after it
has committed.
"""
