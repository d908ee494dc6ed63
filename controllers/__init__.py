# -*- coding: utf-8 -*-
"""
Academic Admin Controllers
==========================
Controller layer between the wizard UI and the directory services.

Controllers provide:
- Ownership of wizard state and its draft
- Qt signals for UI updates
- Candidate lists kept consistent with earlier choices
- Sequential submission off the UI thread

Usage:
    from controllers import WizardController

    controller = WizardController(definition, directory)
    controller.submission_failed.connect(show_error)
    controller.start()
"""

from controllers.base_controller import BaseController
from controllers.cascade_resolver import CandidateList, CascadeResolver
from controllers.wizard_controller import WizardController

__all__ = [
    "BaseController",
    "CandidateList",
    "CascadeResolver",
    "WizardController",
]
