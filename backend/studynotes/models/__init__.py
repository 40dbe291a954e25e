from studynotes.models.note import Note
from studynotes.models.profile import Profile
from studynotes.models.study_material import StudyMaterial

__all__ = ["Note", "Profile", "StudyMaterial"]
