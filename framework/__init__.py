"""
Dialogue playback framework.

Provides the runtime side built on top of the engine:
- Components (playback session state)
- Dialog (playback engine, callbacks, player commands)
"""
