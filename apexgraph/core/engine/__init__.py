"""Engine — pure algorithms and the build pass executor."""
