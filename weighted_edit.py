import logging
import numbers
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

# Grid of Python ints: costs and distances are whole numbers of any size.
DTYPE = object


class EditDistanceError(ValueError):
    """Base class for errors raised by this module."""


class InvalidCostModel(EditDistanceError):
    """
    Raised when a cost model violates one of the consistency invariants.

    :ivar invariant: number (1-4) of the violated invariant
    :ivar values: dict of the offending cost values, keyed by cost name
    """

    def __init__(self, invariant, reason, values):
        self.invariant = invariant
        self.reason = reason
        self.values = values
        details = ", ".join(f"{k}={v}" for k, v in values.items())
        super().__init__(f"invalid cost model (invariant {invariant}): {reason} ({details})")


def _to_ords(s):
    """
    Helper to convert a string to a list of Unicode integer code points.
    'a' -> 97, '😊' -> 128522
    """
    if isinstance(s, str):
        return [ord(c) for c in s]
    if isinstance(s, (bytes, bytearray)):
        return [b for b in s]
    return s


def _to_code(c):
    """Single character (or code point) -> integer code point."""
    if isinstance(c, str):
        if len(c) != 1:
            raise ValueError(f"expected a single character, got {c!r}")
        return ord(c)
    return int(c)


@dataclass(frozen=True)
class CostModel:
    """
    Operation costs for one edit distance computation.

    A cost of ``None`` disables the corresponding channel: no transposition
    of that flavour is ever taken, and a disabled ``spec_sub_cost`` falls
    back to ``sub_cost``.

    ``spec_subs`` is an ordered tuple of ``(from, to)`` character pairs that
    are charged ``spec_sub_cost`` instead of ``sub_cost``. Pairs are
    directional and case-sensitive; when a ``from`` character is listed more
    than once, its first pair wins.
    """
    ins_cost: int
    del_cost: int
    sub_cost: int
    tp_cost: Optional[int] = None
    final_tp_cost: Optional[int] = None
    spec_sub_cost: Optional[int] = None
    spec_subs: tuple = ()

    def __post_init__(self):
        for name, value in self.costs():
            if value is not None and (isinstance(value, bool) or not isinstance(value, numbers.Integral)):
                raise TypeError(f"{name} must be an integer or None, got {value!r}")
        object.__setattr__(self, "spec_subs", tuple(
            (_to_code(src), _to_code(dst)) for src, dst in self.spec_subs))

    @classmethod
    def from_strings(
        cls,
        ins_cost,
        del_cost,
        sub_cost,
        tp_cost=None,
        final_tp_cost=None,
        spec_sub_cost=None,
        spec_sub_from="",
        spec_sub_to=None
    ):
        """
        Build a cost model whose special substitutions are given as two
        parallel strings: ``spec_sub_from[i]`` may be replaced by
        ``spec_sub_to[i]`` at ``spec_sub_cost``.

        :raises TypeError: if ``spec_sub_from`` is given without ``spec_sub_to``
        """
        if spec_sub_to is None:
            if len(spec_sub_from):
                raise TypeError("spec_sub_to is required when spec_sub_from is given")
            spec_sub_to = ""
        src = _to_ords(spec_sub_from)
        dst = _to_ords(spec_sub_to)
        if len(src) != len(dst):
            raise ValueError(
                f"spec_sub_from and spec_sub_to must have the same length "
                f"({len(src)} != {len(dst)})")
        return cls(ins_cost, del_cost, sub_cost, tp_cost, final_tp_cost,
                   spec_sub_cost, tuple(zip(src, dst)))

    def costs(self):
        """The six costs as (name, value) pairs, in declaration order."""
        return (
            ("ins_cost", self.ins_cost),
            ("del_cost", self.del_cost),
            ("sub_cost", self.sub_cost),
            ("tp_cost", self.tp_cost),
            ("final_tp_cost", self.final_tp_cost),
            ("spec_sub_cost", self.spec_sub_cost),
        )

    @property
    def effective_final_tp_cost(self):
        """
        Cheapest price of swapping two adjacent characters, or None when no
        transposition is enabled. A non-final transposition of neighbours
        costs exactly ``tp_cost``, so it bounds the final one.
        """
        enabled = [c for c in (self.tp_cost, self.final_tp_cost) if c is not None]
        return min(enabled) if enabled else None


def validate(cost_model):
    """
    Check that ``cost_model`` is internally consistent.

    Invariants, checked in order:
      1. every enabled cost is >= 0
      2. final_tp_cost <= tp_cost
      3. ins_cost + del_cost <= 2 * final_tp_cost
      4. max(sub_cost, spec_sub_cost) <= final_tp_cost

    Invariants 3 and 4 use the effective final transposition cost and hold
    trivially when transpositions are disabled altogether.

    :raises InvalidCostModel: on the first violated invariant
    """
    for name, value in cost_model.costs():
        if value is not None and value < 0:
            _reject(1, f"{name} is negative", {name: value})

    tp = cost_model.tp_cost
    final_tp = cost_model.final_tp_cost
    if tp is not None and final_tp is not None and final_tp > tp:
        _reject(2, "final_tp_cost exceeds tp_cost",
                {"tp_cost": tp, "final_tp_cost": final_tp})

    swap = cost_model.effective_final_tp_cost
    if swap is None:
        return

    ins = cost_model.ins_cost
    dele = cost_model.del_cost
    if ins + dele > 2 * swap:
        _reject(3, "ins_cost + del_cost exceeds twice the final transposition cost",
                {"ins_cost": ins, "del_cost": dele, "final_tp_cost": swap})

    sub = cost_model.sub_cost
    spec_sub = cost_model.spec_sub_cost
    if max(sub, sub if spec_sub is None else spec_sub) > swap:
        _reject(4, "substitution cost exceeds the final transposition cost",
                {"sub_cost": sub, "spec_sub_cost": spec_sub, "final_tp_cost": swap})


def _reject(invariant, reason, values):
    logger.debug("rejecting cost model, invariant %d: %s %r", invariant, reason, values)
    raise InvalidCostModel(invariant, reason, values)


def _spec_sub_lookup(spec_subs):
    """First pair per ``from`` code wins."""
    table = {}
    for src, dst in spec_subs:
        table.setdefault(src, dst)
    return table


def distance(source, target, cost_model):
    """
    Weighted edit distance between ``source`` and ``target``.

    Minimum total cost of insertions, deletions, substitutions, special
    substitutions and adjacent transpositions turning ``source`` into
    ``target``. Two transposition flavours are considered:

    * final (``final_tp_cost``): the swapped pair is sealed, nothing else
      touches those two characters (Optimal String Alignment).
    * non-final (``tp_cost``): characters may be inserted between or deleted
      around the swapped pair (true Damerau-Levenshtein).

    The cost model is not validated; see :func:`validate`. For inconsistent
    models the result is still a deterministic non-negative integer, but it
    need not be the true minimum.

    :param source: str, bytes or a sequence of integer codes
    :param target: str, bytes or a sequence of integer codes
    :param cost_model: a :class:`CostModel`
    """
    s1 = _to_ords(source)
    s2 = _to_ords(target)
    len1 = len(s1)
    len2 = len(s2)

    # Plain ints so numpy integer costs cannot wrap around.
    ins = int(cost_model.ins_cost)
    dele = int(cost_model.del_cost)
    sub = int(cost_model.sub_cost)
    spec_sub = sub if cost_model.spec_sub_cost is None else int(cost_model.spec_sub_cost)
    spec_subs = _spec_sub_lookup(cost_model.spec_subs)

    # Dearer than deleting everything and inserting everything, so a
    # disabled channel never wins a cell.
    disabled = len1 * dele + len2 * ins + 1
    tp = disabled if cost_model.tp_cost is None else int(cost_model.tp_cost)
    final_tp = disabled if cost_model.final_tp_cost is None else int(cost_model.final_tp_cost)

    d = np.zeros((len1 + 1, len2 + 1), dtype=DTYPE)
    d[:, 0] = [i * dele for i in range(len1 + 1)]
    d[0, :] = [j * ins for j in range(len2 + 1)]

    # da: last row at which each source character was seen.
    da = {}

    for i in range(1, len1 + 1):
        char_i = s1[i - 1]
        # db: last column in this row whose target character matched char_i.
        db = 0

        for j in range(1, len2 + 1):
            char_j = s2[j - 1]

            k = da.get(char_j, 0)
            l = db

            if char_i == char_j:
                cost = 0
                db = j
            elif spec_subs.get(char_i) == char_j:
                cost = spec_sub
            else:
                cost = sub

            # 1. Delete, insert, substitute/match
            best = min(
                d[i - 1, j] + dele,
                d[i, j - 1] + ins,
                d[i - 1, j - 1] + cost
            )

            # 2. Final transposition of the last two characters
            if i > 1 and j > 1 and s1[i - 2] == char_j and char_i == s2[j - 2]:
                best = min(best, d[i - 2, j - 2] + final_tp)

            # 3. Non-final transposition, skipped characters deleted/inserted
            if k > 0 and l > 0:
                best = min(
                    best,
                    d[k - 1, l - 1] + (i - k - 1) * dele + (j - l - 1) * ins + tp
                )

            d[i, j] = best

        da[char_i] = i

    return int(d[len1, len2])


def edit_distance(
    source,
    target,
    ins_cost,
    del_cost,
    sub_cost,
    tp_cost=None,
    final_tp_cost=None,
    spec_sub_cost=None,
    spec_sub_from="",
    spec_sub_to=None
):
    """
    Validated generalized edit distance.

    Omitting ``final_tp_cost`` disables final transpositions; omitting both
    transposition costs gives Levenshtein behaviour; omitting the special
    substitution arguments disables special substitutions.

    :raises InvalidCostModel: if the costs are inconsistent, before any work
    :raises ValueError: if ``spec_sub_from`` and ``spec_sub_to`` differ in length
    :raises TypeError: if ``spec_sub_from`` is given without ``spec_sub_to``
    """
    cost_model = CostModel.from_strings(
        ins_cost, del_cost, sub_cost, tp_cost, final_tp_cost,
        spec_sub_cost, spec_sub_from, spec_sub_to)
    validate(cost_model)
    return distance(source, target, cost_model)


def edit_distance_unsafe(
    source,
    target,
    ins_cost,
    del_cost,
    sub_cost,
    tp_cost=None,
    final_tp_cost=None,
    spec_sub_cost=None,
    spec_sub_from="",
    spec_sub_to=None
):
    """
    Same as :func:`edit_distance` without validating the costs.

    The caller is responsible for keeping the cost model consistent;
    otherwise the result may differ from the true minimum cost.
    """
    cost_model = CostModel.from_strings(
        ins_cost, del_cost, sub_cost, tp_cost, final_tp_cost,
        spec_sub_cost, spec_sub_from, spec_sub_to)
    return distance(source, target, cost_model)


LEVENSHTEIN = CostModel(1, 1, 1)
DAMERAU_LEVENSHTEIN = CostModel(1, 1, 1, tp_cost=1, final_tp_cost=1)
OPTIMAL_STRING_ALIGNMENT = CostModel(1, 1, 1, final_tp_cost=1)


def levenshtein_distance(source, target):
    """Unit-cost insertions, deletions and substitutions."""
    return distance(source, target, LEVENSHTEIN)

lev = levenshtein_distance


def demerau_levenshtein_distance(source, target):
    """
    Unit-cost Damerau-Levenshtein distance. Transposed characters remain
    available to later edits, e.g. "CA" -> "ABC" costs 2.
    """
    return distance(source, target, DAMERAU_LEVENSHTEIN)

damerau_levenshtein_distance = demerau_levenshtein_distance
dam_lev = demerau_levenshtein_distance


def optimal_alignment_distance(source, target):
    """
    Unit-cost Optimal String Alignment distance. Each adjacent pair is
    transposed at most once and never edited again, e.g. "CA" -> "ABC"
    costs 3.
    """
    return distance(source, target, OPTIMAL_STRING_ALIGNMENT)

osa = optimal_alignment_distance


_USAGE = {
    "edit_distance": """
edit_distance(source, target, ins_cost, del_cost, sub_cost
              [, tp_cost [, final_tp_cost
              [, spec_sub_cost [, spec_sub_from, spec_sub_to]]]])

Minimum total cost of turning source into target.

    ins_cost        cost of inserting a character
    del_cost        cost of deleting a character
    sub_cost        cost of substituting one character for another
    tp_cost         cost of transposing two adjacent characters that may
                    still take part in other edits
    final_tp_cost   cost of transposing two adjacent characters that are
                    not edited again
    spec_sub_cost   cost of a special substitution
    spec_sub_from,
    spec_sub_to     equal-length strings; spec_sub_from[i] may become
                    spec_sub_to[i] at spec_sub_cost; they are given
                    together or not at all

All costs are non-negative integers and must satisfy
    final_tp_cost <= tp_cost
    ins_cost + del_cost <= 2 * final_tp_cost
    max(sub_cost, spec_sub_cost) <= final_tp_cost
otherwise InvalidCostModel is raised. Omitted transposition costs disable
that kind of transposition.

Example:
    edit_distance('demerau', 'levenshtein', 1, 1, 1, 1, 1, 1,
                  '01OIIL', 'OI01LI')  -> 9
""",
    "edit_distance_unsafe": """
edit_distance_unsafe(source, target, ins_cost, del_cost, sub_cost
                     [, tp_cost [, final_tp_cost
                     [, spec_sub_cost [, spec_sub_from, spec_sub_to]]]])

Same arguments as edit_distance, but the costs are not checked. If they
are inconsistent the result is deterministic but may not be the minimum
edit cost.
""",
    "levenshtein_distance": """
levenshtein_distance(source, target)

Number of single-character insertions, deletions and substitutions
needed to turn source into target.

Example:
    levenshtein_distance('demerau', 'levenshtein')  -> 9
""",
    "demerau_levenshtein_distance": """
demerau_levenshtein_distance(source, target)

Levenshtein distance that also counts a transposition of two adjacent
characters as a single edit. Transposed characters may be edited again.

Example:
    demerau_levenshtein_distance('CA', 'ABC')  -> 2
""",
    "optimal_alignment_distance": """
optimal_alignment_distance(source, target)

Levenshtein distance that also counts a transposition of two adjacent
characters as a single edit, as long as neither character is edited
again.

Example:
    optimal_alignment_distance('CA', 'ABC')  -> 3
""",
}


def usage(name=None):
    """
    Documentation text for one of the entry points, or an overview of all
    of them when ``name`` is None or unknown.
    """
    if name in _USAGE:
        return _USAGE[name]
    lines = ["Edit distance functions:", ""]
    lines.extend(f"    {n}" for n in _USAGE)
    lines.extend(["", "Call usage('<function name>') for details."])
    return "\n".join(lines)
