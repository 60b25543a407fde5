"""
Field-level form interaction
"""

import logging
from typing import Optional

from playwright.async_api import Locator, Page

from ...exceptions import ElementNotFoundError, FormInteractionError
from ...models.form import FieldDefinition
from .form_definitions import VALIDATED_FIELDS
from .probes import PageProbes


class FormInteractor:
    """Fills single fields, handling dropdown fields and validation settling"""

    def __init__(self, page: Page, probes: PageProbes):
        self.page = page
        self.probes = probes
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def fill_field(self, definition: FieldDefinition, value: str, locator_override: Optional[str] = None):
        """
        Wait for a field, replace its content and let the form settle

        Raises:
            ElementNotFoundError: the field never became visible
            FormInteractionError: the field could not be filled
        """
        selector = locator_override or definition.locator
        visible = await self.probes.element_state(selector, "visible", optional=definition.optional,
                                                  max_timeout=self.probes.config.global_timeout)
        if not visible:
            raise ElementNotFoundError(selector, definition.label, self.probes.config.global_timeout)

        field = self.page.locator(selector).first
        try:
            await field.fill("")
            await field.fill(value)
        except Exception as e:
            raise FormInteractionError("fill", definition.label, {"selector": selector, "error": str(e)})

        if await self._is_dropdown(definition, field):
            await self._accept_dropdown_choice(field, definition.label)

        if definition.key in VALIDATED_FIELDS:
            await self._check_validation(field, definition.label)

    async def _is_dropdown(self, definition: FieldDefinition, field: Locator) -> bool:
        if definition.field_type.lower() in ("dropdown", "select"):
            return True
        try:
            haspopup = (await field.get_attribute("aria-haspopup")) or ""
            role = (await field.get_attribute("role")) or ""
            expanded = (await field.get_attribute("aria-expanded")) or ""
        except Exception:
            return False
        return "listbox" in haspopup.lower() or "combobox" in role.lower() or bool(expanded)

    async def _accept_dropdown_choice(self, field: Locator, label: str):
        self.logger.debug(f"Handling dropdown selection for {label}")
        await self.probes.dropdown_populated()
        try:
            await field.press("Enter")
        except Exception as e:
            self.logger.warning(f"Could not press Enter on dropdown field {label}: {e}")

    async def _check_validation(self, field: Locator, label: str):
        await self.probes.validation_stable("form")
        try:
            invalid = await field.get_attribute("aria-invalid")
        except Exception:
            return
        if invalid and invalid != "false":
            self.logger.warning(f"Field {label} shows invalid state ({invalid})")
