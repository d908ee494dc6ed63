# -*- coding: utf-8 -*-
"""
Academic Admin Wizards

- framework: steps, state, validation, navigation and submission
- class_teacher: assign a class teacher (teacher -> class -> section)
"""
