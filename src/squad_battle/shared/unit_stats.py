from squad_battle.shared.schemas import Unit, UnitKind, UnitStats

MIN_LEVEL = 1
MAX_LEVEL = 5

ORC_HP = {1: 40.0, 2: 42.0, 3: 48.0, 4: 56.0, 5: 64.0}
ORC_DAMAGE = {1: 4.0, 2: 6.0, 3: 6.0, 4: 8.0, 5: 8.0}
SKELETON_HP = {1: 25.0, 2: 27.0, 3: 30.0, 4: 35.0, 5: 40.0}

JUMP_BONUS = 0.5


def unit_hp(kind: UnitKind, level: int) -> float:
    """
    Max hp by kind and level; 0 outside the known levels.
    Mage: HP = 12 + 3 * (level - 1)
    """
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        return 0.0
    if kind == UnitKind.MAGE:
        return 12.0 + 3.0 * (level - 1)
    if kind == UnitKind.ORC:
        return ORC_HP[level]
    return SKELETON_HP[level]

def unit_damage(kind: UnitKind, level: int) -> float:
    """
    Base damage by kind and level; 0 outside the known levels.
    Mage:     DMG = 8 + 2 * (level - 1)
    Skeleton: DMG = 10 + 2 * (level - 1)
    """
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        return 0.0
    if kind == UnitKind.MAGE:
        return 8.0 + 2.0 * (level - 1)
    if kind == UnitKind.ORC:
        return ORC_DAMAGE[level]
    return 10.0 + 2.0 * (level - 1)

def derive_stats(kind: UnitKind, level: int) -> UnitStats:
    hp = unit_hp(kind, level)
    return UnitStats(hp=hp, damage=unit_damage(kind, level), max_hp=hp)

def new_unit(kind: UnitKind, level: int, unit_id: int) -> Unit:
    """A fresh, not yet placed unit with full hp."""
    return Unit(id=unit_id, kind=kind, level=level, stats=derive_stats(kind, level))

def jump_multiplier(segment_index: int) -> float:
    """
    Implements M = 1 + 0.5 * (k + 1) for a jump on segment k.
    """
    return 1.0 + JUMP_BONUS * (segment_index + 1)
