"""Outcome catalogue and per-market pricing profiles.

Every bettable outcome belongs to exactly one market. A market's profile
carries the thresholds the volume and probability factors compare against,
derived from the number of outcomes that split the market. Tuning a market
is a table edit, not a code branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

SHARE_QUANT = Decimal("0.01")
PROBABILITY_QUANT = Decimal("0.0001")
DEFAULT_VOLUME_FACTOR_CAP = Decimal("0.20")


class OutcomeType(str, Enum):
    HOME = "home"
    AWAY = "away"
    DRAW = "draw"

    HOME_TO_QUALIFY = "home_to_qualify"
    AWAY_TO_QUALIFY = "away_to_qualify"

    HOME_OR_DRAW = "home_or_draw"
    HOME_OR_AWAY = "home_or_away"
    AWAY_OR_DRAW = "away_or_draw"

    BTTS_YES = "btts_yes"
    BTTS_NO = "btts_no"

    OVER_0_5 = "over_0_5"
    UNDER_0_5 = "under_0_5"
    OVER_1_5 = "over_1_5"
    UNDER_1_5 = "under_1_5"
    OVER_2_5 = "over_2_5"
    UNDER_2_5 = "under_2_5"
    OVER_3_5 = "over_3_5"
    UNDER_3_5 = "under_3_5"

    HOME_MINUS_2 = "home_minus_2"
    DRAW_MINUS_2 = "draw_minus_2"
    AWAY_PLUS_2 = "away_plus_2"
    HOME_MINUS_1 = "home_minus_1"
    DRAW_MINUS_1 = "draw_minus_1"
    AWAY_PLUS_1 = "away_plus_1"

    HOME_MINUS_0_5_1 = "home_minus_0_5_1"
    AWAY_PLUS_0_5_1 = "away_plus_0_5_1"
    HOME_MINUS_0_5 = "home_minus_0_5"
    AWAY_PLUS_0_5 = "away_plus_0_5"

    OVER_1_1_5 = "over_1_1_5"
    UNDER_1_1_5 = "under_1_1_5"
    OVER_0_5_1 = "over_0_5_1"
    UNDER_0_5_1 = "under_0_5_1"

    SCORE_1_0 = "score_1_0"
    SCORE_2_0 = "score_2_0"
    SCORE_2_1 = "score_2_1"
    SCORE_3_0 = "score_3_0"
    SCORE_0_0 = "score_0_0"
    SCORE_0_1 = "score_0_1"
    SCORE_0_2 = "score_0_2"
    SCORE_1_1 = "score_1_1"
    SCORE_1_2 = "score_1_2"
    SCORE_OTHER = "score_other"

    FIRST_SCORER_1 = "first_scorer_1"
    FIRST_SCORER_2 = "first_scorer_2"
    FIRST_SCORER_3 = "first_scorer_3"
    FIRST_SCORER_4 = "first_scorer_4"
    FIRST_SCORER_5 = "first_scorer_5"
    NO_GOALSCORER = "no_goalscorer"

    OVER_6_5_CARDS = "over_6_5_cards"
    UNDER_6_5_CARDS = "under_6_5_cards"
    OVER_4_5_CARDS = "over_4_5_cards"
    UNDER_4_5_CARDS = "under_4_5_cards"

    OVER_8_CORNERS = "over_8_corners"
    EXACTLY_8_CORNERS = "exactly_8_corners"
    UNDER_8_CORNERS = "under_8_corners"
    OVER_6_CORNERS = "over_6_corners"
    EXACTLY_6_CORNERS = "exactly_6_corners"
    UNDER_6_CORNERS = "under_6_corners"

    HOME_REGULAR_TIME = "home_regular_time"
    AWAY_REGULAR_TIME = "away_regular_time"
    HOME_PENALTIES = "home_penalties"
    AWAY_PENALTIES = "away_penalties"

    SECOND_HALF_OVER_1_5 = "second_half_over_1_5"
    SECOND_HALF_UNDER_1_5 = "second_half_under_1_5"
    SECOND_HALF_OVER_0_5 = "second_half_over_0_5"
    SECOND_HALF_UNDER_0_5 = "second_half_under_0_5"
    SECOND_HALF_BTTS_YES = "second_half_btts_yes"
    SECOND_HALF_BTTS_NO = "second_half_btts_no"
    SECOND_HALF_HOME = "second_half_home"
    SECOND_HALF_DRAW = "second_half_draw"
    SECOND_HALF_AWAY = "second_half_away"


@dataclass(frozen=True, slots=True)
class MarketProfile:
    key: str
    label: str
    cardinality: int
    overexposed_share_pct: Decimal | None = None
    underexposed_share_pct: Decimal | None = None
    fair_probability_override: Decimal | None = None
    volume_factor_cap: Decimal = DEFAULT_VOLUME_FACTOR_CAP

    @property
    def upper_share_pct(self) -> Decimal:
        if self.overexposed_share_pct is not None:
            return self.overexposed_share_pct
        return (Decimal(100) / self.cardinality).quantize(SHARE_QUANT, rounding=ROUND_HALF_UP)

    @property
    def lower_share_pct(self) -> Decimal:
        if self.underexposed_share_pct is not None:
            return self.underexposed_share_pct
        return (Decimal(60) / self.cardinality).quantize(SHARE_QUANT, rounding=ROUND_HALF_UP)

    @property
    def fair_probability(self) -> Decimal:
        if self.fair_probability_override is not None:
            return self.fair_probability_override
        return (Decimal(1) / self.cardinality).quantize(PROBABILITY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class OutcomeSpec:
    market: str
    seed_low: Decimal
    seed_high: Decimal


MATCH_RESULT = "match_result"

MARKETS: dict[str, MarketProfile] = {
    profile.key: profile
    for profile in (
        MarketProfile(MATCH_RESULT, "Match result (1X2)", 3),
        MarketProfile("to_qualify", "To qualify", 2),
        MarketProfile("double_chance", "Double chance", 3),
        MarketProfile("both_teams_to_score", "Both teams to score", 2),
        MarketProfile("total_goals_0_5", "Total goals 0.5", 2),
        MarketProfile("total_goals_1_5", "Total goals 1.5", 2),
        MarketProfile("total_goals_2_5", "Total goals 2.5", 2),
        MarketProfile("total_goals_3_5", "Total goals 3.5", 2),
        MarketProfile("result_handicap_1", "Result handicap -1", 3),
        MarketProfile("result_handicap_2", "Result handicap -2", 3),
        MarketProfile("asian_handicap_0_5", "Asian handicap -0.5", 2),
        MarketProfile("asian_handicap_0_5_1", "Asian handicap -0.5/-1", 2),
        MarketProfile("asian_total_0_5_1", "Asian total 0.5/1", 2),
        MarketProfile("asian_total_1_1_5", "Asian total 1/1.5", 2),
        MarketProfile("correct_score", "Correct score", 10),
        MarketProfile("first_goalscorer", "First goalscorer", 6),
        MarketProfile("total_cards_4_5", "Total cards 4.5", 2),
        MarketProfile("total_cards_6_5", "Total cards 6.5", 2),
        MarketProfile("corners_6", "Corners 6", 3),
        MarketProfile("corners_8", "Corners 8", 3),
        MarketProfile("method_of_qualification", "Method of qualification", 4),
        MarketProfile("second_half_goals_0_5", "Second half goals 0.5", 2),
        MarketProfile("second_half_goals_1_5", "Second half goals 1.5", 2),
        MarketProfile("second_half_btts", "Second half both teams to score", 2),
        MarketProfile("second_half_result", "Second half result", 3),
    )
}


def _spec(market: str, low: str, high: str) -> OutcomeSpec:
    return OutcomeSpec(market=market, seed_low=Decimal(low), seed_high=Decimal(high))


O = OutcomeType

OUTCOMES: dict[OutcomeType, OutcomeSpec] = {
    O.HOME: _spec(MATCH_RESULT, "1.50", "3.50"),
    O.AWAY: _spec(MATCH_RESULT, "1.80", "4.00"),
    O.DRAW: _spec(MATCH_RESULT, "2.00", "4.50"),
    O.HOME_TO_QUALIFY: _spec("to_qualify", "1.20", "1.80"),
    O.AWAY_TO_QUALIFY: _spec("to_qualify", "2.00", "3.50"),
    O.HOME_OR_DRAW: _spec("double_chance", "1.10", "1.30"),
    O.HOME_OR_AWAY: _spec("double_chance", "1.30", "1.60"),
    O.AWAY_OR_DRAW: _spec("double_chance", "1.60", "2.00"),
    O.BTTS_YES: _spec("both_teams_to_score", "1.80", "2.50"),
    O.BTTS_NO: _spec("both_teams_to_score", "1.40", "2.20"),
    O.OVER_0_5: _spec("total_goals_0_5", "1.10", "1.40"),
    O.UNDER_0_5: _spec("total_goals_0_5", "3.00", "4.50"),
    O.OVER_1_5: _spec("total_goals_1_5", "1.80", "2.50"),
    O.UNDER_1_5: _spec("total_goals_1_5", "1.40", "2.00"),
    O.OVER_2_5: _spec("total_goals_2_5", "3.50", "5.50"),
    O.UNDER_2_5: _spec("total_goals_2_5", "1.10", "1.30"),
    O.OVER_3_5: _spec("total_goals_3_5", "7.00", "12.00"),
    O.UNDER_3_5: _spec("total_goals_3_5", "1.01", "1.10"),
    O.HOME_MINUS_2: _spec("result_handicap_2", "8.00", "15.00"),
    O.DRAW_MINUS_2: _spec("result_handicap_2", "4.00", "7.00"),
    O.AWAY_PLUS_2: _spec("result_handicap_2", "1.10", "1.30"),
    O.HOME_MINUS_1: _spec("result_handicap_1", "3.00", "5.00"),
    O.DRAW_MINUS_1: _spec("result_handicap_1", "2.50", "3.50"),
    O.AWAY_PLUS_1: _spec("result_handicap_1", "1.60", "2.20"),
    O.HOME_MINUS_0_5_1: _spec("asian_handicap_0_5_1", "2.00", "2.80"),
    O.AWAY_PLUS_0_5_1: _spec("asian_handicap_0_5_1", "1.40", "1.80"),
    O.HOME_MINUS_0_5: _spec("asian_handicap_0_5", "1.70", "2.20"),
    O.AWAY_PLUS_0_5: _spec("asian_handicap_0_5", "1.70", "2.20"),
    O.OVER_1_1_5: _spec("asian_total_1_1_5", "1.60", "2.20"),
    O.UNDER_1_1_5: _spec("asian_total_1_1_5", "1.60", "2.20"),
    O.OVER_0_5_1: _spec("asian_total_0_5_1", "1.20", "1.50"),
    O.UNDER_0_5_1: _spec("asian_total_0_5_1", "2.50", "3.50"),
    O.SCORE_1_0: _spec("correct_score", "5.00", "8.00"),
    O.SCORE_2_0: _spec("correct_score", "6.00", "10.00"),
    O.SCORE_2_1: _spec("correct_score", "7.00", "12.00"),
    O.SCORE_3_0: _spec("correct_score", "12.00", "20.00"),
    O.SCORE_0_0: _spec("correct_score", "6.00", "12.00"),
    O.SCORE_0_1: _spec("correct_score", "8.00", "16.00"),
    O.SCORE_0_2: _spec("correct_score", "20.00", "35.00"),
    O.SCORE_1_1: _spec("correct_score", "4.00", "8.00"),
    O.SCORE_1_2: _spec("correct_score", "15.00", "25.00"),
    O.SCORE_OTHER: _spec("correct_score", "3.00", "6.00"),
    O.FIRST_SCORER_1: _spec("first_goalscorer", "4.00", "7.00"),
    O.FIRST_SCORER_2: _spec("first_goalscorer", "6.00", "10.00"),
    O.FIRST_SCORER_3: _spec("first_goalscorer", "15.00", "25.00"),
    O.FIRST_SCORER_4: _spec("first_goalscorer", "10.00", "16.00"),
    O.FIRST_SCORER_5: _spec("first_goalscorer", "11.00", "18.00"),
    O.NO_GOALSCORER: _spec("first_goalscorer", "3.00", "4.50"),
    O.OVER_6_5_CARDS: _spec("total_cards_6_5", "1.80", "2.50"),
    O.UNDER_6_5_CARDS: _spec("total_cards_6_5", "1.50", "2.00"),
    O.OVER_4_5_CARDS: _spec("total_cards_4_5", "1.40", "1.80"),
    O.UNDER_4_5_CARDS: _spec("total_cards_4_5", "1.90", "2.60"),
    O.OVER_8_CORNERS: _spec("corners_8", "2.80", "3.80"),
    O.EXACTLY_8_CORNERS: _spec("corners_8", "5.50", "7.50"),
    O.UNDER_8_CORNERS: _spec("corners_8", "1.40", "1.80"),
    O.OVER_6_CORNERS: _spec("corners_6", "1.40", "1.80"),
    O.EXACTLY_6_CORNERS: _spec("corners_6", "4.50", "6.50"),
    O.UNDER_6_CORNERS: _spec("corners_6", "2.80", "3.80"),
    O.HOME_REGULAR_TIME: _spec("method_of_qualification", "1.60", "2.20"),
    O.AWAY_REGULAR_TIME: _spec("method_of_qualification", "5.00", "7.00"),
    O.HOME_PENALTIES: _spec("method_of_qualification", "4.00", "5.50"),
    O.AWAY_PENALTIES: _spec("method_of_qualification", "4.00", "5.50"),
    O.SECOND_HALF_OVER_1_5: _spec("second_half_goals_1_5", "2.20", "2.80"),
    O.SECOND_HALF_UNDER_1_5: _spec("second_half_goals_1_5", "1.30", "1.70"),
    O.SECOND_HALF_OVER_0_5: _spec("second_half_goals_0_5", "1.20", "1.50"),
    O.SECOND_HALF_UNDER_0_5: _spec("second_half_goals_0_5", "2.80", "3.60"),
    O.SECOND_HALF_BTTS_YES: _spec("second_half_btts", "3.20", "4.20"),
    O.SECOND_HALF_BTTS_NO: _spec("second_half_btts", "1.20", "1.40"),
    O.SECOND_HALF_HOME: _spec("second_half_result", "2.50", "3.20"),
    O.SECOND_HALF_DRAW: _spec("second_half_result", "1.90", "2.50"),
    O.SECOND_HALF_AWAY: _spec("second_half_result", "4.00", "5.00"),
}


def market_for(outcome: OutcomeType) -> str:
    return OUTCOMES[outcome].market


def profile_for(outcome: OutcomeType) -> MarketProfile:
    return MARKETS[market_for(outcome)]


def outcomes_in_market(market: str) -> list[OutcomeType]:
    if market not in MARKETS:
        raise ValueError(f"Unknown market: {market}")
    return [outcome for outcome, spec in OUTCOMES.items() if spec.market == market]
