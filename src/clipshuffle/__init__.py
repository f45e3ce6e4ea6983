"""clipshuffle — randomized multi-clip video montage.

Plan random sub-clips from a pool of videos, preload them into a small
round-robin pool of playback slots, and composite them onto a fixed-size
output frame (aspect crop, random zoom, one-second double exposure
between clips) that is encoded to a single mp4.
"""
