from .prober import BackendAddress, LivenessProber, probe

__all__ = ["BackendAddress", "LivenessProber", "probe"]
