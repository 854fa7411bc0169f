from odds_engine.models.event import SportEvent
from odds_engine.models.odds_change import OddsChangeRecord
from odds_engine.models.odds_policy import OddsPolicy
from odds_engine.models.odds_quote import OddsQuote
from odds_engine.models.wagering_volume import WageringVolume

__all__ = ["SportEvent", "OddsPolicy", "OddsQuote", "OddsChangeRecord", "WageringVolume"]
