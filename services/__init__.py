"""Service layer - Règles métier du mariage.

Contributions et registre, invités et RSVP, check-in, présence, quiz,
sondages, notifications et journal d'activité. Chaque service reçoit ses
repositories au constructeur et ne dépend pas d'app.py.
"""
