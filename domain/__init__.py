"""Describes the meal-planning domain. Centres around the one `Document`.

Why is this hard?

- Every tab and device reads and writes the same JSON blob.
- The blob store has no locks, so the version number is the lock.
- A client can race itself: a second click lands while the first save is
  still on the wire.

The answer is to never send diffs. Operations are transforms of whatever the
document turns out to be, so a conflict is just: take the server's copy,
apply the transform again, send it again.

Recipe generation, sessions and the UI are someone else's problem.
"""
