"""Presentation-side state: notifications, navigation effects, sidebars, badge."""
