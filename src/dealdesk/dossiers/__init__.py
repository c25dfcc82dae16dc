"""Dossier (M&A mandate) management: schemas, list/filter view, mutation controls.

Provides Pydantic schemas (Dossier, DossierStatus, KanbanStage, Reminder),
DossierListView with its Kanban board projection, and the status, stage and
delete controls.
"""
