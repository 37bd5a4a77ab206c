"""Building blocks of the todo application: errors, models, authentication and tenant provisioning."""