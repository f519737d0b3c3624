"""
Static TNPSC syllabus served by /api/tnpsc/syllabus.
"""

TNPSC_SYLLABUS = {
    "prelims": {
        "General Studies": {
            "History": [
                "Ancient Indian History",
                "Medieval Indian History",
                "Modern Indian History",
                "Tamil Nadu History",
            ],
            "Geography": [
                "Physical Geography",
                "Human Geography",
                "Indian Geography",
                "Tamil Nadu Geography",
            ],
            "Polity": [
                "Constitution",
                "Fundamental Rights",
                "Directive Principles",
                "Local Governance",
            ],
            "Economics": [
                "Microeconomics",
                "Macroeconomics",
                "Indian Economy",
                "Tamil Nadu Economy",
            ],
            "General Science": [
                "Physics",
                "Chemistry",
                "Biology",
                "Environmental Science",
            ],
            "Current Affairs": [
                "National",
                "International",
                "State Level",
                "Awards and Honors",
            ],
        }
    },
    "mains": {
        "Paper 1": ["Tamil Language and Literature", "English Language"],
        "Paper 2": ["General Studies", "Aptitude and Mental Ability"],
        "Paper 3": ["General Studies", "Essay Writing"],
        "Paper 4": ["Optional Subject"],
    },
}
