# app/core/constants.py - Fixed choice sets and limits for student records

FORM_CLASSES = (
    "1st", "2nd", "3rd", "4th", "5th", "6th",
    "7th", "8th", "9th", "10th", "11th", "12th",
)

FORM_SECTIONS = ("A", "B", "C", "D", "E")

BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")

# Field length limits
NAME_MAX_LENGTH = 100
ADMISSION_NO_MAX_LENGTH = 50
ADDRESS_MIN_LENGTH = 10
ADDRESS_MAX_LENGTH = 500
CONTACT_MIN_LENGTH = 10
CONTACT_MAX_LENGTH = 15
CONTACT_SANITIZED_MAX_LENGTH = 20
GENERIC_INPUT_MAX_LENGTH = 1000

# Canonical contact number rule: optional +91 prefix, then a 10 digit mobile number starting 6-9
CONTACT_NUMBER_PATTERN = r"^(\+91[- ]?)?[6-9][0-9]{9}$"

# Passport photo geometry (width:height = 3:4)
PASSPORT_ASPECT_RATIO = 3 / 4
PASSPORT_OUTPUT_SIZE = (450, 600)
INITIAL_CROP_COVERAGE = 0.9
JPEG_QUALITY = 90

ALLOWED_SORT_FIELDS = ("name", "admissionNo", "class", "section", "contactNo")

PHOTO_URL_MAX_LENGTH = 1024
