# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant create_all : les FK sessions.user_id → users.id doivent se résoudre.

from parcinfo.models.user import UserRow  # noqa: F401  (doit précéder session)
from parcinfo.models.session import InviteTokenRow, SessionRow  # noqa: F401
