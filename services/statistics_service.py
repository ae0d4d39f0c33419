"""Statistics Service - Agrégats des contributions pour cadeaux et cagnottes.

Responsabilité (SRP) : lecture et agrégation uniquement.
- Les montants sont toujours recalculés depuis les contributions
  (le `current_amount` des cagnottes n'est jamais repris tel quel)
- Une cible inconnue ou sans contribution donne un enregistrement à zéro
"""
import logging
from typing import Dict, Any, List, Optional
from models import ContributionStatus
from contribution_stats import (
    compute_contribution_stats, rank_contributors, bucket_amounts, percent, SETTLED_STATUSES
)
from repositories.contribution_repository import ContributionRepository
from repositories.gift_repository import GiftRepository
from repositories.pot_repository import PotRepository


class StatisticsService:
    """Service de statistiques sur les contributions.

    Pattern: Service Layer
    """

    def __init__(self, contribution_repository: ContributionRepository = None,
                 gift_repository: GiftRepository = None,
                 pot_repository: PotRepository = None):
        self.contribution_repo = contribution_repository or ContributionRepository()
        self.gift_repo = gift_repository or GiftRepository()
        self.pot_repo = pot_repository or PotRepository()
        self.logger = logging.getLogger(__name__)

    def _check_owner(self, target, couple_id: Optional[int]) -> None:
        if target is not None and couple_id is not None and target.couple_id != couple_id:
            raise PermissionError("Access denied to this registry item")

    def _contributions_for(self, gift_id: int = None, pot_id: int = None, couple_id: int = None) -> list:
        """Contributions d'un cadeau ou d'une cagnotte (liste vide si la cible n'existe pas)."""
        if (gift_id is None) == (pot_id is None):
            raise ValueError("Exactly one of gift_id or pot_id is required")
        if gift_id is not None:
            target = self.gift_repo.find_by_id(gift_id)
            self._check_owner(target, couple_id)
            return self.contribution_repo.find_by_gift(gift_id) if target else []
        target = self.pot_repo.find_by_id(pot_id)
        self._check_owner(target, couple_id)
        return self.contribution_repo.find_by_pot(pot_id) if target else []

    def get_gift_stats(self, gift_id: int, couple_id: int = None) -> Dict[str, Any]:
        """Statistiques des contributions d'un cadeau.

        Returns:
            Enregistrement de `compute_contribution_stats` complété de `gift_id`
        """
        stats = compute_contribution_stats(self._contributions_for(gift_id=gift_id, couple_id=couple_id))
        stats['gift_id'] = gift_id
        return stats

    def get_pot_stats(self, pot_id: int, couple_id: int = None) -> Dict[str, Any]:
        """Statistiques des contributions d'une cagnotte, avec progression vers l'objectif."""
        stats = compute_contribution_stats(self._contributions_for(pot_id=pot_id, couple_id=couple_id))
        stats['pot_id'] = pot_id

        pot = self.pot_repo.find_by_id(pot_id)
        target_amount = pot.target_amount if pot else None
        stats['target_amount'] = target_amount
        stats['progress_percent'] = percent(stats['total_amount'], target_amount) if target_amount else None
        stats['goal_reached'] = bool(target_amount) and stats['total_amount'] >= target_amount
        return stats

    def get_leaderboard(self, gift_id: int = None, pot_id: int = None,
                        couple_id: int = None, limit: int = None) -> List[Dict[str, Any]]:
        """Classement des contributeurs d'un cadeau ou d'une cagnotte."""
        if limit is not None and limit < 1:
            raise ValueError("Limit must be a positive integer")
        contributions = self._contributions_for(gift_id=gift_id, pot_id=pot_id, couple_id=couple_id)
        return rank_contributors(contributions, limit=limit)

    def get_couple_leaderboard(self, couple_id: int, limit: int = None) -> List[Dict[str, Any]]:
        """Classement de tous les contributeurs d'un couple (cadeaux et cagnottes confondus)."""
        contributions = self.contribution_repo.find_by_couple(couple_id)
        return rank_contributors(contributions, limit=limit)

    def get_distribution(self, gift_id: int = None, pot_id: int = None,
                         couple_id: int = None) -> List[Dict[str, Any]]:
        """Répartition par tranches des montants confirmés ou livrés.

        Sans gift_id ni pot_id, porte sur toutes les contributions du couple.
        """
        if gift_id is None and pot_id is None:
            if couple_id is None:
                raise ValueError("A gift, a pot or a couple is required")
            contributions = self.contribution_repo.find_by_couple(couple_id)
        else:
            contributions = self._contributions_for(gift_id=gift_id, pot_id=pot_id, couple_id=couple_id)

        amounts = [c.amount for c in contributions
                   if c.status in SETTLED_STATUSES and c.amount is not None]
        return bucket_amounts(amounts)

    def get_couple_overview(self, couple_id: int) -> Dict[str, Any]:
        """Agrégats de toutes les contributions d'un couple."""
        contributions = self.contribution_repo.find_by_couple(couple_id)
        stats = compute_contribution_stats(contributions)
        stats['couple_id'] = couple_id
        stats['gift_contributions'] = sum(1 for c in contributions
                                          if c.gift_id is not None and c.status != ContributionStatus.CANCELLED)
        stats['pot_contributions'] = sum(1 for c in contributions
                                         if c.pot_id is not None and c.status != ContributionStatus.CANCELLED)
        return stats
