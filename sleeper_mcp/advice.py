"""
Rule-of-thumb fantasy advice over enriched player records.

Everything here is a pure function of already-resolved data (the dicts built
by ``models.enrich_player``). The rules are mechanical thresholds on search
rank and injury status; they make no claim to ranking quality. Unranked
players are treated as rank 999.
"""

from typing import Any, Dict, List, Optional

UNRANKED = 999

TIER_LIMITS = (
    (24, "elite"),
    (60, "high"),
    (120, "mid"),
    (200, "low"),
)

BASE_POINTS = {
    "QB": {"elite": 22, "high": 18, "mid": 15, "low": 12, "deep": 8},
    "RB": {"elite": 18, "high": 14, "mid": 11, "low": 8, "deep": 5},
    "WR": {"elite": 16, "high": 12, "mid": 9, "low": 7, "deep": 4},
    "TE": {"elite": 14, "high": 10, "mid": 7, "low": 5, "deep": 3},
    "K": {"elite": 9, "high": 8, "mid": 7, "low": 6, "deep": 5},
    "DEF": {"elite": 12, "high": 9, "mid": 7, "low": 5, "deep": 3},
}

PPR_BONUS = {"elite": 4, "high": 3, "mid": 2, "low": 1, "deep": 1}
HALF_PPR_BONUS = {"elite": 2, "high": 1.5, "mid": 1, "low": 0.5, "deep": 0.5}
RISK_MULTIPLIER = {"extreme": 0.0, "high": 0.2, "moderate": 0.7, "low": 0.9, "none": 1.0}


def _rank(player: Dict[str, Any]) -> int:
    rank = player.get("search_rank")
    return rank if isinstance(rank, int) and not isinstance(rank, bool) else UNRANKED


def _name(player: Dict[str, Any]) -> str:
    return player.get("full_name") or f"{player.get('first_name') or ''} {player.get('last_name') or ''}".strip()


def player_tier(player: Dict[str, Any]) -> str:
    rank = _rank(player)
    for limit, tier in TIER_LIMITS:
        if rank <= limit:
            return tier
    return "deep"


def injury_risk_level(player: Dict[str, Any]) -> str:
    status = (player.get("injury_status") or "").lower()
    if not status or status == "healthy":
        return "none"
    if status == "probable":
        return "low"
    if status == "questionable":
        return "moderate"
    if status == "doubtful":
        return "high"
    if status in ("out", "injured reserve", "ir"):
        return "extreme"
    return "low"


def fantasy_impact(player: Dict[str, Any]) -> str:
    injury = player.get("injury_status")
    if injury == "Out":
        return "HIGH NEGATIVE IMPACT - Player is ruled out and should not be started"
    if injury == "Doubtful":
        return "HIGH RISK - Player unlikely to play, consider bench/alternative options"
    if injury == "Questionable":
        return "MODERATE RISK - Monitor closely, have backup plan ready"
    if player.get("status") != "Active":
        return "NOT FANTASY RELEVANT - Player not on active roster"
    return "LOW RISK - Player appears healthy and available"


def player_recommendation(player: Dict[str, Any]) -> str:
    injury = player.get("injury_status")
    if injury == "Out":
        return "DO NOT START - Find immediate replacement"
    if injury == "Doubtful":
        return "AVOID - High risk of not playing"
    if injury == "Questionable":
        return "CAUTION - Monitor injury reports leading up to game time"

    rank = _rank(player)
    tier = "elite" if rank <= 50 else "solid" if rank <= 150 else "depth"
    return f"CONSIDER STARTING - {tier} option at {player.get('position')}"


def start_sit_recommendation(player: Dict[str, Any]) -> str:
    """One of "start", "flex" or "sit"."""
    rank = _rank(player)
    injury = player.get("injury_status")
    if injury in ("Out", "Doubtful"):
        return "sit"
    if rank <= 60 and injury != "Questionable":
        return "start"
    if rank <= 120:
        return "flex"
    return "sit"


def recommendation_confidence(player: Dict[str, Any]) -> int:
    rank = _rank(player)
    confidence = 50
    if rank <= 24:
        confidence += 30
    elif rank <= 60:
        confidence += 20
    elif rank <= 120:
        confidence += 10
    else:
        confidence -= 10

    injury = player.get("injury_status")
    if injury == "Out":
        confidence = 95
    elif injury == "Doubtful":
        confidence += 20
    elif injury == "Questionable":
        confidence -= 15

    return max(0, min(100, confidence))


def start_sit_reasoning(player: Dict[str, Any]) -> str:
    reasons = []
    rank = _rank(player)
    if rank <= 24:
        reasons.append("Elite player ranking")
    elif rank <= 60:
        reasons.append("Solid fantasy option")
    elif rank > 200:
        reasons.append("Low fantasy ranking")

    injury = player.get("injury_status")
    if injury == "Out":
        reasons.append("Ruled out for game")
    elif injury == "Doubtful":
        reasons.append("Unlikely to play")
    elif injury == "Questionable":
        reasons.append("Game-time decision")
    else:
        reasons.append("No injury concerns")

    if player.get("team"):
        reasons.append(f"{player.get('team')} {player.get('position')}")
    return " | ".join(reasons)


def start_sit_sort_key(advice: Dict[str, Any]):
    """Starts first, then higher confidence."""
    return (advice["recommendation"] != "start", -advice["confidence"])


def projected_points(player: Dict[str, Any], scoring_format: str = "ppr") -> float:
    """Tier-and-position point estimate, scaled down by injury risk."""
    tier = player_tier(player)
    position = (player.get("position") or "WR").upper()
    projected = BASE_POINTS.get(position, {}).get(tier, 6)

    if position in ("RB", "WR", "TE"):
        if scoring_format == "ppr":
            projected += PPR_BONUS[tier]
        elif scoring_format == "half_ppr":
            projected += HALF_PPR_BONUS[tier]

    projected *= RISK_MULTIPLIER[injury_risk_level(player)]
    return round(projected, 2)


def lineup_projected_points(starters: List[Dict[str, Any]]) -> int:
    total = 0
    for player in starters:
        rank = _rank(player)
        points = 8
        if rank <= 24:
            points += 6
        elif rank <= 60:
            points += 4
        elif rank <= 120:
            points += 2

        injury = player.get("injury_status")
        if injury == "Questionable":
            points -= 2
        elif injury == "Doubtful":
            points -= 5
        elif injury == "Out":
            points = 0
        total += points
    return total


def lineup_grade(starters: List[Dict[str, Any]]) -> str:
    """Letter grade from the share of starters with no injury designation."""
    if not starters:
        return "F"
    injured = sum(1 for p in starters if p.get("injury_status") in ("Out", "Doubtful", "Questionable"))
    healthy_ratio = (len(starters) - injured) / len(starters)
    if healthy_ratio >= 0.9:
        return "A"
    if healthy_ratio >= 0.8:
        return "B"
    if healthy_ratio >= 0.7:
        return "C"
    if healthy_ratio >= 0.6:
        return "D"
    return "F"


def lineup_changes(starters: List[Dict[str, Any]], bench: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Suggest benching Out/Doubtful starters when a position-compatible bench player exists."""
    changes = []
    for starter in starters:
        if starter.get("injury_status") not in ("Out", "Doubtful"):
            continue
        positions = set(starter.get("fantasy_positions") or [])
        replacement = next(
            (
                p for p in bench
                if positions.intersection(p.get("fantasy_positions") or [])
                and p.get("injury_status") != "Out"
            ),
            None,
        )
        if replacement is None:
            continue
        changes.append({
            "player": starter,
            "replacement": replacement,
            "recommendation": f"Bench {_name(starter)}",
            "reason": f"Player is {starter.get('injury_status')} - replace with {_name(replacement)}",
        })
    return changes


def waiver_priority(index: int) -> str:
    if index < 5:
        return "high"
    if index < 15:
        return "medium"
    return "low"


def waiver_reason(player: Dict[str, Any], trending_count: int) -> str:
    reason = f"{trending_count} managers added recently"
    injury = player.get("injury_status")
    if injury and injury != "Healthy":
        reason += f" - Monitor injury status ({injury})"
    if player.get("team"):
        reason += f" - {player.get('team')} {player.get('position')}"
    return reason


def compare_players(p1: Dict[str, Any], p2: Dict[str, Any], context: Optional[str] = None) -> Dict[str, Any]:
    name1, name2 = _name(p1), _name(p2)
    rank1, rank2 = _rank(p1), _rank(p2)
    injury1 = p1.get("injury_status") or "Healthy"
    injury2 = p2.get("injury_status") or "Healthy"

    if p1.get("age") and p2.get("age"):
        ages = f"{p1['age']} vs {p2['age']} years old"
    else:
        ages = "Age data unavailable"
    if p1.get("years_exp") is not None and p2.get("years_exp") is not None:
        experience = f"{p1['years_exp']} vs {p2['years_exp']} years experience"
    else:
        experience = "Experience data unavailable"

    if injury1 == "Healthy" and injury2 != "Healthy":
        injury_advantage = name1
    elif injury2 == "Healthy" and injury1 != "Healthy":
        injury_advantage = name2
    else:
        injury_advantage = "Even"

    if injury1 == "Out" and injury2 != "Out":
        recommendation = f"Start {name2} - {name1} is ruled out"
    elif injury2 == "Out" and injury1 != "Out":
        recommendation = f"Start {name1} - {name2} is ruled out"
    elif abs(rank1 - rank2) > 30:
        better = name1 if rank1 < rank2 else name2
        recommendation = f"Start {better} - significantly higher ranked player"
    else:
        recommendation = "Close decision - both viable options. Consider matchup and recent form."

    return {
        "basic_info": {
            "positions": f"{p1.get('position')} vs {p2.get('position')}",
            "teams": f"{p1.get('team') or 'FA'} vs {p2.get('team') or 'FA'}",
            "ages": ages,
            "experience": experience,
        },
        "injury_status": {"status": f"{injury1} vs {injury2}", "advantage": injury_advantage},
        "fantasy_relevance": {
            "rankings": f"#{rank1} vs #{rank2}",
            "advantage": name1 if rank1 < rank2 else name2 if rank2 < rank1 else "Even",
        },
        "recommendation": recommendation,
        "context": context or "general comparison",
    }
