"""SoundStats listening history engine."""
