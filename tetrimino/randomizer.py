# Tetrimino - A falling-block rules engine
# randomizer.py - 7-bag piece generation with a visible next queue

from typing import List, Optional, Tuple
import numpy as np

from .pieces import PieceType, get_all_piece_types


class BagRandomizer:
    """
    Generates an endless sequence of pieces using a 7-bag system.

    A hidden bag holds one of each identity in shuffled order. The visible
    queue is topped up from the bag after every removal, reshuffling a fresh
    bag whenever the current one runs dry, so any 7 draws aligned to a bag
    boundary are a permutation of all 7 pieces.
    """

    def __init__(self, queue_size: int = 5, seed: Optional[int] = None):
        self.queue_size = queue_size
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._bag: List[PieceType] = []
        self._queue: List[PieceType] = []
        self._refill_bag()
        self._fill_queue()

    def _refill_bag(self):
        pieces = get_all_piece_types()
        self._bag = [pieces[i] for i in self._rng.permutation(len(pieces))]

    def _fill_queue(self):
        while len(self._queue) < self.queue_size:
            if not self._bag:
                self._refill_bag()
            self._queue.append(self._bag.pop(0))

    def peek(self, n: Optional[int] = None) -> List[PieceType]:
        """
        Return up to n upcoming pieces without consuming them.

        Lookahead is capped at queue_size: only the visible queue is exposed,
        never the hidden bag behind it.
        """
        if n is None:
            n = self.queue_size
        return self._queue[:max(0, n)]

    def dequeue_next(self) -> PieceType:
        """Remove and return the front of the queue, then top the queue up."""
        piece_type = self._queue.pop(0)
        self._fill_queue()
        return piece_type

    def reset(self):
        """
        Discard the bag and queue and start over from a fresh bag.
        Without an explicit seed the generator is reseeded from OS entropy.
        """
        self._rng = np.random.default_rng(self.seed)
        self._bag = []
        self._queue = []
        self._refill_bag()
        self._fill_queue()

    @property
    def next_queue(self) -> Tuple[PieceType, ...]:
        return tuple(self._queue)

    @property
    def bag_remaining(self) -> int:
        return len(self._bag)

    def __repr__(self):
        names = ''.join(p.name for p in self._queue)
        return f"BagRandomizer(next={names}, bag_remaining={len(self._bag)})"
