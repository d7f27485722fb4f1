"""
Map rendering.
"""

from .svg import LAYOUTS, Layout, SvgRenderer, captures_by_faction, format_war_duration, get_layout, render_svg

__all__ = ['LAYOUTS', 'Layout', 'SvgRenderer', 'captures_by_faction', 'format_war_duration', 'get_layout', 'render_svg']
