from .machines import CaptureFSM, SweepFSM, YamlFSM

__all__ = ["YamlFSM", "SweepFSM", "CaptureFSM"]
