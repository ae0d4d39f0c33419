"""Calculs purs sur les contributions (agrégats, classement, répartition).

Aucun accès base de données ici: les fonctions reçoivent des objets ayant
les attributs `status`, `amount`, `invite_id` et `contributed_at` (modèles
`Contribution` ou équivalents) et ne font que de l'arithmétique Decimal.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, List, Iterable, Optional

from models import ContributionStatus, CENT, to_money

ZERO = Decimal('0.00')

# Statuts comptabilisés dans le montant collecté
SETTLED_STATUSES = (ContributionStatus.CONFIRMED, ContributionStatus.DELIVERED)

# Tranches de montants: (libellé, borne basse incluse, borne haute exclue)
AMOUNT_BANDS = [
    ('0-24', Decimal('0'), Decimal('25')),
    ('25-49', Decimal('25'), Decimal('50')),
    ('50-99', Decimal('50'), Decimal('100')),
    ('100-199', Decimal('100'), Decimal('200')),
    ('200+', Decimal('200'), None),
]


def is_settled(contribution) -> bool:
    return contribution.status in SETTLED_STATUSES


def percent(part, whole) -> Decimal:
    """Pourcentage arrondi au centième, 0.00 quand le total est nul."""
    if not whole:
        return ZERO
    return (Decimal(part) * 100 / Decimal(whole)).quantize(CENT, rounding=ROUND_HALF_UP)


def empty_stats() -> Dict[str, Any]:
    return {
        'total_contributions': 0,
        'pending_count': 0,
        'confirmed_count': 0,
        'delivered_count': 0,
        'cancelled_count': 0,
        'total_amount': ZERO,
        'pending_amount': ZERO,
        'average_amount': ZERO,
        'min_amount': ZERO,
        'max_amount': ZERO,
        'confirmation_rate_percent': ZERO,
    }


def compute_contribution_stats(contributions: Iterable) -> Dict[str, Any]:
    """Agrège les contributions d'un cadeau ou d'une cagnotte.

    Le montant total, la moyenne et les extrêmes portent uniquement sur les
    contributions confirmées ou livrées; les contributions en attente sont
    reportées à part (`pending_amount`). Le taux de confirmation rapporte
    confirmées + livrées aux contributions non annulées.
    """
    stats = empty_stats()
    settled_amounts = []
    pending_total = ZERO

    for contribution in contributions:
        stats['total_contributions'] += 1
        status = ContributionStatus(contribution.status)
        amount = to_money(contribution.amount)

        if status == ContributionStatus.PENDING:
            stats['pending_count'] += 1
            if amount is not None:
                pending_total += amount
        elif status == ContributionStatus.CONFIRMED:
            stats['confirmed_count'] += 1
        elif status == ContributionStatus.DELIVERED:
            stats['delivered_count'] += 1
        else:
            stats['cancelled_count'] += 1

        if status in SETTLED_STATUSES and amount is not None:
            settled_amounts.append(amount)

    if stats['total_contributions'] == 0:
        return stats

    stats['pending_amount'] = pending_total
    if settled_amounts:
        total = sum(settled_amounts, ZERO)
        stats['total_amount'] = total.quantize(CENT, rounding=ROUND_HALF_UP)
        stats['average_amount'] = (total / len(settled_amounts)).quantize(CENT, rounding=ROUND_HALF_UP)
        stats['min_amount'] = min(settled_amounts)
        stats['max_amount'] = max(settled_amounts)

    settled_count = stats['confirmed_count'] + stats['delivered_count']
    active_count = stats['total_contributions'] - stats['cancelled_count']
    stats['confirmation_rate_percent'] = percent(settled_count, active_count)
    return stats


def rank_contributors(contributions: Iterable, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Classe les invités par montant confirmé + livré.

    Ordre: total décroissant, puis date de la première contribution comptée
    (la plus ancienne d'abord), puis ID invité croissant. Les rangs sont
    1, 2, 3... sans ex aequo.
    """
    totals: Dict[int, Dict[str, Any]] = {}

    for contribution in contributions:
        if not is_settled(contribution):
            continue
        entry = totals.get(contribution.invite_id)
        if entry is None:
            entry = {
                'invite_id': contribution.invite_id,
                'contributor_name': getattr(contribution, 'contributor_name', None),
                'total_amount': ZERO,
                'contribution_count': 0,
                'first_contribution_at': contribution.contributed_at,
            }
            totals[contribution.invite_id] = entry
        entry['total_amount'] += to_money(contribution.amount) or ZERO
        entry['contribution_count'] += 1
        if contribution.contributed_at < entry['first_contribution_at']:
            entry['first_contribution_at'] = contribution.contributed_at

    ranked = sorted(
        totals.values(),
        key=lambda e: (-e['total_amount'], e['first_contribution_at'], e['invite_id'])
    )
    if limit is not None:
        ranked = ranked[:limit]

    for position, entry in enumerate(ranked, start=1):
        entry['rank'] = position
        entry['first_contribution_at'] = entry['first_contribution_at'].isoformat()
    return ranked


def apportion_percentages(counts: List[int]) -> List[Decimal]:
    """Répartit 100.00 % entre des effectifs (méthode du plus fort reste).

    Le calcul se fait en centièmes de pourcent entiers: la somme vaut
    exactement 100.00 dès qu'un effectif est non nul. À égalité de reste,
    la première position l'emporte.
    """
    total = sum(counts)
    if total == 0:
        return [ZERO for _ in counts]

    floors = []
    remainders = []
    for index, count in enumerate(counts):
        quotient, remainder = divmod(count * 10000, total)
        floors.append(quotient)
        remainders.append((-remainder, index))

    missing = 10000 - sum(floors)
    for _, index in sorted(remainders)[:missing]:
        floors[index] += 1

    return [(Decimal(hundredths) / 100).quantize(CENT) for hundredths in floors]


def band_for(amount: Decimal) -> str:
    for label, lower, upper in AMOUNT_BANDS:
        if amount >= lower and (upper is None or amount < upper):
            return label
    # Montants négatifs: jamais acceptés par la validation, rangés en première tranche
    return AMOUNT_BANDS[0][0]


def bucket_amounts(amounts: Iterable) -> List[Dict[str, Any]]:
    """Répartit des montants dans les tranches fixes avec effectif et pourcentage."""
    counts = {label: 0 for label, _, _ in AMOUNT_BANDS}
    for amount in amounts:
        amount = to_money(amount)
        if amount is None:
            continue
        counts[band_for(amount)] += 1

    percentages = apportion_percentages([counts[label] for label, _, _ in AMOUNT_BANDS])
    return [
        {
            'band': label,
            'min_amount': lower,
            'max_amount': upper,
            'count': counts[label],
            'percentage': pct,
        }
        for (label, lower, upper), pct in zip(AMOUNT_BANDS, percentages)
    ]
