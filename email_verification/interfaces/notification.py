from abc import ABC, abstractmethod
from typing import Any


class INotificationSender(ABC):
    @abstractmethod
    async def send(
        self,
        address: str,
        subject: str,
        template_ref: str,
        locals: dict[str, Any]
    ) -> None:
        """Render a template with locals and deliver it to an address.

        Raises:
            DeliveryError: If rendering or transport fails
        """
        pass
