"""Qt-facing state objects.

UI bindings read engine state through these QObjects (properties + change
signals); only the engine mutates them.
"""
