app_name = "groom_scheduling"
app_title = "Groom Scheduling"
app_publisher = "Sebastian Ortiz Valencia"
app_description = "Disponibilidad, precios y reservas para peluquerias de mascotas"
app_email = "sebastianortiz989@gmail.com"
app_license = "mit"

# Apps
# ------------------

required_apps = ["frappe"]

# Installation
# ------------

# before_install = "groom_scheduling.install.before_install"
# after_install = "groom_scheduling.install.after_install"

# Document Events
# ---------------
# Booking rules are enforced by the DocType controllers and the booking API

# doc_events = {
# 	"Grooming Appointment": {
# 		"on_update": "method",
# 	}
# }

# Testing
# -------

# before_tests = "groom_scheduling.install.before_tests"

# Overriding Methods
# ------------------------------

# override_whitelisted_methods = {
# 	"frappe.desk.doctype.event.event.get_events": "groom_scheduling.event.get_events"
# }

# Automatically update python controller files with type annotations for this app.
export_python_type_annotations = True
