"""Repository layer - Data Access Objects (DAO) pattern.

Ce package contient les repositories qui gèrent l'accès aux données.
Responsabilité : CRUD operations, requêtes DB, persistence.
Ne contient PAS de logique métier (ni agrégats monétaires, calculés par
`contribution_stats`).
"""
