"""
Playback module for captionkit.

Two adapters share one control surface and event stream:
``NativeHlsAdapter`` drives an HLS pipeline with tracker-rendered captions,
``IframeAdapter`` drives the vendor's embedded player over RPC.
"""

from .base import AudioTrack, CaptionStatus, PlaybackAdapter, TextTrackStatus, match_audio_track
from .events import EVENTS, EventEmitter
from .iframe import IframeAdapter, IframeElement, RpcPlayer, build_embed_url, pick_caption_language
from .native import MediaElement, MediaPipeline, NativeHlsAdapter, NativeState, PipelineError
from .scheduler import Scheduler, ThreadingScheduler, TimerHandle
from .tracker import ActiveCueTracker, find_active_cue

__all__ = [
    'ActiveCueTracker',
    'AudioTrack',
    'CaptionStatus',
    'EVENTS',
    'EventEmitter',
    'IframeAdapter',
    'IframeElement',
    'MediaElement',
    'MediaPipeline',
    'NativeHlsAdapter',
    'NativeState',
    'PipelineError',
    'PlaybackAdapter',
    'RpcPlayer',
    'Scheduler',
    'TextTrackStatus',
    'ThreadingScheduler',
    'TimerHandle',
    'build_embed_url',
    'find_active_cue',
    'match_audio_track',
    'pick_caption_language',
]
