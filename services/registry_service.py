"""Registry Service - Liste de cadeaux et cagnottes d'un couple.

Responsabilité (SRP) : gestion métier du registre.
- Création / mise à jour des cadeaux et cagnottes avec validation
- Vues dérivées (cadeaux en attente, cagnottes proches de l'objectif)
- Réordonnancement en lot (mises à jour individuelles, non atomique)
"""
import logging
from decimal import Decimal
from typing import Dict, Any, List
from models import Gift, Pot, GiftPriority, NotFoundError, ValidationError, CENT, to_money, parse_money
from contribution_stats import compute_contribution_stats, percent, ZERO
from repositories.gift_repository import GiftRepository
from repositories.pot_repository import PotRepository
from repositories.contribution_repository import ContributionRepository

GIFT_FIELDS = ('name', 'description', 'estimated_price', 'purchase_link', 'image_url',
               'priority', 'category', 'desired_quantity', 'is_active', 'display_order')
POT_FIELDS = ('name', 'description', 'target_amount', 'image_url', 'payment_link',
              'is_active', 'display_order')


class RegistryService:
    """Service pour la gestion du registre (cadeaux + cagnottes).

    Pattern: Service Layer
    """

    def __init__(self, gift_repository: GiftRepository = None,
                 pot_repository: PotRepository = None,
                 contribution_repository: ContributionRepository = None):
        self.gift_repo = gift_repository or GiftRepository()
        self.pot_repo = pot_repository or PotRepository()
        self.contribution_repo = contribution_repository or ContributionRepository()
        self.logger = logging.getLogger(__name__)

    # ---------- Cadeaux ----------

    def _apply_gift_fields(self, gift: Gift, data: Dict[str, Any]) -> None:
        """Valide puis applique les champs; rien n'est modifié en cas d'erreur."""
        values = {field: data.get(field, getattr(gift, field)) for field in GIFT_FIELDS}

        if not values['name'] or not str(values['name']).strip():
            raise ValueError("Gift name is required")
        values['name'] = str(values['name']).strip()
        if values['priority'] is not None:
            values['priority'] = GiftPriority(values['priority']).value
        if values['estimated_price'] is not None:
            values['estimated_price'] = parse_money(values['estimated_price'], 'estimated_price')
            if values['estimated_price'] < 0:
                raise ValidationError('estimated_price', "Estimated price cannot be negative")
        if values['desired_quantity'] is None or int(values['desired_quantity']) < 1:
            raise ValueError("Desired quantity must be at least 1")
        values['desired_quantity'] = int(values['desired_quantity'])

        for field, value in values.items():
            setattr(gift, field, value)

    def create_gift(self, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Ajoute un cadeau à la liste d'un couple.

        Raises:
            ValueError: nom manquant, priorité inconnue, quantité < 1
        """
        gift = Gift(couple_id=couple_id, desired_quantity=1, received_quantity=0, is_active=True)
        self._apply_gift_fields(gift, data)
        self.gift_repo.save(gift)
        self.logger.info(f"Gift {gift.id} '{gift.name}' created for couple {couple_id}")
        return gift.to_dict()

    def update_gift(self, gift_id: int, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        gift = self.get_gift(gift_id, couple_id)
        self._apply_gift_fields(gift, data)
        self.gift_repo.save(gift)
        self.logger.info(f"Gift {gift.id} updated")
        return gift.to_dict()

    def get_gift(self, gift_id: int, couple_id: int = None) -> Gift:
        gift = self.gift_repo.find_by_id(gift_id)
        if not gift:
            raise NotFoundError(f"Gift {gift_id} not found")
        if couple_id is not None and gift.couple_id != couple_id:
            raise PermissionError("Access denied to this gift")
        return gift

    def list_gifts(self, couple_id: int, active_only: bool = True) -> List[Dict[str, Any]]:
        return [g.to_dict() for g in self.gift_repo.find_by_couple(couple_id, active_only=active_only)]

    def list_pending_gifts(self, couple_id: int) -> List[Dict[str, Any]]:
        return [g.to_dict() for g in self.gift_repo.find_pending(couple_id)]

    def list_completed_gifts(self, couple_id: int) -> List[Dict[str, Any]]:
        return [g.to_dict() for g in self.gift_repo.find_completed(couple_id)]

    # ---------- Cagnottes ----------

    def _apply_pot_fields(self, pot: Pot, data: Dict[str, Any]) -> None:
        values = {field: data.get(field, getattr(pot, field)) for field in POT_FIELDS}

        if not values['name'] or not str(values['name']).strip():
            raise ValueError("Pot name is required")
        values['name'] = str(values['name']).strip()
        if values['target_amount'] is not None:
            values['target_amount'] = parse_money(values['target_amount'], 'target_amount')
            if values['target_amount'] <= 0:
                raise ValidationError('target_amount', "Target amount must be positive")

        for field, value in values.items():
            setattr(pot, field, value)

    def create_pot(self, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Crée une cagnotte pour un couple (objectif optionnel)."""
        pot = Pot(couple_id=couple_id, current_amount=ZERO, is_active=True)
        self._apply_pot_fields(pot, data)
        self.pot_repo.save(pot)
        self.logger.info(f"Pot {pot.id} '{pot.name}' created for couple {couple_id}")
        return pot.to_dict()

    def update_pot(self, pot_id: int, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        pot = self.get_pot(pot_id, couple_id)
        self._apply_pot_fields(pot, data)
        self.pot_repo.save(pot)
        self.logger.info(f"Pot {pot.id} updated")
        return pot.to_dict()

    def get_pot(self, pot_id: int, couple_id: int = None) -> Pot:
        pot = self.pot_repo.find_by_id(pot_id)
        if not pot:
            raise NotFoundError(f"Pot {pot_id} not found")
        if couple_id is not None and pot.couple_id != couple_id:
            raise PermissionError("Access denied to this pot")
        return pot

    def list_pots(self, couple_id: int, active_only: bool = True) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self.pot_repo.find_by_couple(couple_id, active_only=active_only)]

    def _raised_amount(self, pot: Pot) -> Decimal:
        """Montant collecté recalculé depuis les contributions."""
        return compute_contribution_stats(self.contribution_repo.find_by_pot(pot.id))['total_amount']

    def list_pots_below_goal(self, couple_id: int) -> List[Dict[str, Any]]:
        """Cagnottes actives avec objectif non encore atteint."""
        result = []
        for pot in self.pot_repo.find_by_couple(couple_id):
            if pot.target_amount is None:
                continue
            raised = self._raised_amount(pot)
            if raised < pot.target_amount:
                entry = pot.to_dict()
                entry['raised_amount'] = raised
                entry['remaining_amount'] = (to_money(pot.target_amount) - raised).quantize(CENT)
                result.append(entry)
        return result

    def list_pots_closest_to_goal(self, couple_id: int, limit: int = 3) -> List[Dict[str, Any]]:
        """Cagnottes non atteintes triées par progression décroissante."""
        pots = self.list_pots_below_goal(couple_id)
        for entry in pots:
            entry['progress_percent'] = percent(entry['raised_amount'], entry['target_amount'])
        pots.sort(key=lambda e: (-e['progress_percent'], e['id']))
        return pots[:limit]

    # ---------- Vue d'ensemble ----------

    def get_registry_summary(self, couple_id: int) -> Dict[str, Any]:
        """Résumé du registre d'un couple (cadeaux actifs + cagnottes actives)."""
        gifts = self.gift_repo.find_by_couple(couple_id)
        prices = [to_money(g.estimated_price) for g in gifts if g.estimated_price is not None]
        total_value = sum(prices, ZERO)

        pots = self.pot_repo.find_by_couple(couple_id)
        raised_by_pot = {pot.id: self._raised_amount(pot) for pot in pots}
        goals_reached = sum(1 for pot in pots
                            if pot.target_amount is not None and raised_by_pot[pot.id] >= pot.target_amount)

        return {
            'couple_id': couple_id,
            'gifts': {
                'total': len(gifts),
                'complete': sum(1 for g in gifts if g.is_complete()),
                'pending': sum(1 for g in gifts if not g.is_complete()),
                'estimated_total_value': total_value.quantize(CENT),
                'average_price': (total_value / len(prices)).quantize(CENT) if prices else ZERO,
                'by_priority': {str(k): v for k, v in self.gift_repo.count_by_priority(couple_id).items()},
                'categories': self.gift_repo.find_categories(couple_id),
            },
            'pots': {
                'total': len(pots),
                'raised_amount': sum(raised_by_pot.values(), ZERO).quantize(CENT),
                'target_amount': sum((to_money(p.target_amount) for p in pots if p.target_amount is not None), ZERO),
                'goals_reached': goals_reached,
            },
        }

    # ---------- Réordonnancement ----------

    def reorder_gifts(self, couple_id: int, ordered_ids: List[int]) -> int:
        """Réordonne les cadeaux (position = index + 1).

        Toutes les appartenances sont vérifiées avant la première mise à jour.
        """
        for gift_id in ordered_ids:
            self.get_gift(gift_id, couple_id)
        for position, gift_id in enumerate(ordered_ids, start=1):
            self.gift_repo.update_display_order(gift_id, position)
        self.gift_repo.commit()
        self.logger.info(f"Reordered {len(ordered_ids)} gift(s) for couple {couple_id}")
        return len(ordered_ids)

    def reorder_pots(self, couple_id: int, ordered_ids: List[int]) -> int:
        for pot_id in ordered_ids:
            self.get_pot(pot_id, couple_id)
        for position, pot_id in enumerate(ordered_ids, start=1):
            self.pot_repo.update_display_order(pot_id, position)
        self.pot_repo.commit()
        self.logger.info(f"Reordered {len(ordered_ids)} pot(s) for couple {couple_id}")
        return len(ordered_ids)
