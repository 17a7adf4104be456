"""Edge treatments for the plate. Both read the old field and write the new one."""

DIRICHLET = "dirichlet"
ROBIN = "robin"


def apply_dirichlet(u_new, T_amb):
    """Pins every edge cell to the ambient temperature."""
    u_new[:, 0] = T_amb
    u_new[:, -1] = T_amb
    u_new[0, :] = T_amb
    u_new[-1, :] = T_amb


def apply_robin(u, u_new, K, h, dx, dy, T_amb):
    """
    Convective edges: balances conduction from the adjacent interior cell
    against convective exchange with ambient air,

        T_b = (k_b * T_inner + h * dn * T_amb) / (k_b + h * dn)

    with dn = dx on the left/right edges and dn = dy on the bottom/top edges.
    Edges are written left, right, bottom, top; each corner keeps the value of
    the bottom/top pass.
    """
    h_dx = h * dx
    h_dy = h * dy

    # Left edge (i=0)
    K_l = K[:, 0]
    u_new[:, 0] = (K_l * u[:, 1] + h_dx * T_amb) / (K_l + h_dx)

    # Right edge (i=nx-1)
    K_r = K[:, -1]
    u_new[:, -1] = (K_r * u[:, -2] + h_dx * T_amb) / (K_r + h_dx)

    # Bottom edge (j=0)
    K_b = K[0, :]
    u_new[0, :] = (K_b * u[1, :] + h_dy * T_amb) / (K_b + h_dy)

    # Top edge (j=ny-1)
    K_t = K[-1, :]
    u_new[-1, :] = (K_t * u[-2, :] + h_dy * T_amb) / (K_t + h_dy)


def apply_boundary(mode, u, u_new, K, h, dx, dy, T_amb):
    """Dispatches on the boundary-condition mode of the configuration."""
    if mode == DIRICHLET:
        apply_dirichlet(u_new, T_amb)
    elif mode == ROBIN:
        apply_robin(u, u_new, K, h, dx, dy, T_amb)
    else:
        raise ValueError(f"Unknown boundary condition {mode!r}.")
