from abc import ABC, abstractmethod


class AbstractMessenger(ABC):
	"""Interface for messaging providers that deliver captured images to a chat."""

	@abstractmethod
	async def send_image(
		self,
		destination_id: int,
		image: bytes,
		*,
		filename: str,
		as_photo: bool = True,
	) -> None:
		"""Deliver one image to a destination chat.

		Args:
			destination_id: Chat the image is sent to.
			image: Raw image bytes.
			filename: File name shown to chat members.
			as_photo: Send as a compressed photo (True) or as a document (False).

		Raises:
			ProviderAppError: If the provider rejects the request or cannot be reached.
		"""
		...

	async def aclose(self) -> None:
		"""Release network resources held by the client."""
		return None
