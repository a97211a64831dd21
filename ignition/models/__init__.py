"""
Data models for Ignition.

Import models explicitly from their modules:
    from ignition.models.base import Actor, AuditableItem
    from ignition.models.entities import Requirement, TestCase, Risk, ...
    from ignition.models.project import ProjectData, Document, ...
    from ignition.models.audit import AuditLogEntry, AuditLogFile
    from ignition.models.files import ConfigFile, StateFile
    from ignition.models.github import FileContent, CommitResult, ...
"""
